"""
Storage-layer exceptions.
"""

from __future__ import annotations


class StorageError(Exception):
    """Raised when a storage backend fails to read or write a record."""
