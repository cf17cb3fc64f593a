"""Utility modules."""

from .text import preview, safe_truncate

__all__ = ["preview", "safe_truncate"]
