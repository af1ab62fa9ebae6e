"""Shared helpers: HTTP fetching, logging and error types."""
