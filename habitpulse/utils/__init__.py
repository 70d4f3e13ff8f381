"""Shared helpers: dates and timezones, retries, logging and validation."""
