"""Shared application plumbing (error handlers)."""

__all__ = [
    "error_handlers",
]
