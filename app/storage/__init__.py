"""
app/storage package marker.
"""

from app.storage.base import Storage
from app.storage.errors import StorageError
from app.storage.factory import get_storage
from app.storage.memory_storage import MemoryStorage

__all__ = [
    "MemoryStorage",
    "Storage",
    "StorageError",
    "get_storage",
]
