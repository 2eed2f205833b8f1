"""
Storage backend selection.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import STORAGE_MODE_DATABASE, get_storage_settings
from app.storage.base import Storage
from app.storage.memory_storage import MemoryStorage

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_storage() -> Storage:
    """
    Return the process-wide storage backend selected by STORAGE_MODE.

    Raises RuntimeError when the mode is invalid or the database is not configured.
    """

    settings = get_storage_settings()
    if settings.mode == STORAGE_MODE_DATABASE:
        from app.storage.sqlalchemy_storage import SQLAlchemyStorage
        from db.session import get_session_factory

        storage: Storage = SQLAlchemyStorage(session_factory=get_session_factory())
    else:
        storage = MemoryStorage()

    logger.info("Storage backend selected mode=%s backend=%s", settings.mode, type(storage).__name__)
    return storage
