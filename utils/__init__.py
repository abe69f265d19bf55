"""Request parsing and validation helpers."""
