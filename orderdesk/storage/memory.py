"""
In-Memory Storage

Keeps collections in process memory. Nothing survives a restart.
"""

import asyncio
import copy
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator

from orderdesk.storage.base import BaseStorage, Record


class MemoryStorage(BaseStorage):
    """Process-local storage guarded by one asyncio lock per collection."""

    def __init__(self) -> None:
        self._collections: dict[str, list[Record]] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def backend_name(self) -> str:
        return "memory"

    @asynccontextmanager
    async def locked(self, collection: str) -> AsyncIterator[None]:
        async with self._locks[collection]:
            yield

    async def read(self, collection: str) -> list[Record]:
        # Copies keep callers from mutating stored state without a write.
        return copy.deepcopy(self._collections.get(collection, []))

    async def write(self, collection: str, records: list[Record]) -> None:
        self._collections[collection] = copy.deepcopy(records)

    async def health_check(self) -> bool:
        return True
