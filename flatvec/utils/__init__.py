"""Utility modules for common operations."""

from flatvec.utils.atomic import atomic_write_bytes

__all__ = ["atomic_write_bytes"]
