"""
Storage Abstract Base Class

A storage backend keeps named collections of JSON-compatible records.
Callers serialize read-modify-write cycles by holding ``locked(name)``
around the ``read``/``write`` pair:

    async with storage.locked("orders"):
        records = await storage.read("orders")
        records.append(record)
        await storage.write("orders", records)
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager

Record = dict[str, Any]


class BaseStorage(ABC):
    """Abstract base class for persistence backends."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    def locked(self, collection: str) -> AsyncContextManager[None]:
        """Hold the exclusive mutation lock for a collection."""
        pass

    @abstractmethod
    async def read(self, collection: str) -> list[Record]:
        """Return every record of a collection (empty if it does not exist)."""
        pass

    @abstractmethod
    async def write(self, collection: str, records: list[Record]) -> None:
        """Replace the contents of a collection."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check that the backend is usable."""
        pass
