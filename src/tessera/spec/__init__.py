"""JSON schemas for payloads crossing the signing-agent boundary."""
