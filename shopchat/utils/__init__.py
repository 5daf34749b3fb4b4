"""Shared helpers for input cleaning and secret redaction."""
