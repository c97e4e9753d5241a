"""Unit tests for the database layer in safetrade/core/database.

All tests use in-memory SQLite so they run without external database
services.
"""
