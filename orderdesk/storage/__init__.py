"""
Storage Backend Factory

Returns the memory or JSON-file backend based on STORAGE_BACKEND.
"""

import logging
from typing import Optional

from orderdesk.core.config import Settings, StorageBackend, get_settings
from orderdesk.storage.base import BaseStorage, Record
from orderdesk.storage.json_file import JsonFileStorage
from orderdesk.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)


def build_storage(settings: Optional[Settings] = None) -> BaseStorage:
    """Create the configured storage backend."""
    settings = settings or get_settings()

    if settings.storage_backend == StorageBackend.FILE:
        logger.info(f"Storage: JsonFileStorage ({settings.data_directory})")
        return JsonFileStorage(settings.data_directory, settings.storage_lock_timeout)

    logger.info("Storage: MemoryStorage (orders are lost on restart)")
    return MemoryStorage()


__all__ = [
    "build_storage",
    "BaseStorage",
    "Record",
    "MemoryStorage",
    "JsonFileStorage",
]
