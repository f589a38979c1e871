"""Logging, user notices and the JSON-lines error log."""
