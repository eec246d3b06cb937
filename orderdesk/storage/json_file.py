"""
JSON File Storage with Concurrency Control

Each collection lives in ``<data_directory>/<collection>.json``.
Mutations are serialized twice over:
    - an asyncio lock per collection for coroutines in this process
    - a FileLock on ``<collection>.json.lock`` for other processes
      (e.g. a Celery worker pruning subscriptions)

Writes go to a temporary file that is renamed over the original, so
readers never see a half-written file.
"""

import asyncio
import json
import logging
import os
import tempfile
from collections import defaultdict
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from filelock import FileLock, Timeout

from orderdesk.core.exceptions import PersistenceError
from orderdesk.storage.base import BaseStorage, Record

logger = logging.getLogger(__name__)


class JsonFileStorage(BaseStorage):
    """File-backed storage, one JSON array per collection."""

    def __init__(self, data_directory: str, lock_timeout: float = 10.0):
        self.data_dir = Path(data_directory)
        self.lock_timeout = lock_timeout
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def backend_name(self) -> str:
        return "file"

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    @asynccontextmanager
    async def locked(self, collection: str) -> AsyncIterator[None]:
        async with self._locks[collection]:
            self._ensure_data_dir()
            lock_path = str(self._path(collection)) + ".lock"
            file_lock = FileLock(lock_path, timeout=self.lock_timeout, thread_local=False)
            try:
                await asyncio.to_thread(file_lock.acquire)
            except Timeout:
                logger.error(f"Lock timeout on {lock_path} ({self.lock_timeout}s)")
                raise PersistenceError(f"Timed out waiting for {collection} lock")
            logger.debug(f"Lock acquired for {collection}")
            try:
                yield
            finally:
                await asyncio.to_thread(file_lock.release)
                logger.debug(f"Lock released for {collection}")

    async def read(self, collection: str) -> list[Record]:
        return await asyncio.to_thread(self._read_sync, collection)

    async def write(self, collection: str, records: list[Record]) -> None:
        await asyncio.to_thread(self._write_sync, collection, records)

    def _read_sync(self, collection: str) -> list[Record]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            raise PersistenceError(f"Could not read {collection}: {e}") from e
        if not isinstance(data, list):
            raise PersistenceError(f"{path} does not contain a JSON array")
        return data

    def _write_sync(self, collection: str, records: list[Record]) -> None:
        self._ensure_data_dir()
        path = self._path(collection)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{collection}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.exception(f"Error writing {path}")
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not write {collection}: {e}") from e

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._ensure_data_dir)
            return os.access(self.data_dir, os.W_OK)
        except OSError as e:
            logger.error(f"Storage health check failed: {e}")
            return False
