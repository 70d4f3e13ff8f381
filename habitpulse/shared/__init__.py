"""Pydantic payloads exchanged with the UI layer."""
