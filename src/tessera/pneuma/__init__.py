"""
Pneuma - Ledger interaction layer for Tessera.

Typed contract-call arguments, an async JSON-RPC client, and the
build / simulate / prepare / submit / confirm stages of an invocation.

Uses httpx for transport and RFC 8785 canonical JSON for envelopes.
"""
