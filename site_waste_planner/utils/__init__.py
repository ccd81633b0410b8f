"""Shared helpers: logging setup, numeric coercion, text and time utilities."""
