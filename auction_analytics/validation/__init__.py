"""JSON Schema validation for inbound payloads."""
