"""
Sigil - Signing agent integration.

Detects the user's signing agent, requests access, and delegates
transaction signatures to it. Key material never enters the pipeline.
"""
