"""
API I/O schemas.

Pydantic models describing request bodies and response payloads of the
SafeTrade API, grouped by resource.
"""
