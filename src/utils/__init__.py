"""Shared helpers: logging, errors, caching, validation."""
