"""
Real-time Channel Abstract Base Class

Server-to-staff event stream. Messages are JSON envelopes:

    {"event": "newOrder", "data": {...}}
"""

from abc import ABC, abstractmethod
from typing import Any

# Server -> client events
EVENT_EXISTING_ORDERS = "existingOrders"
EVENT_NEW_ORDER = "newOrder"
EVENT_ORDER_UPDATED = "orderUpdated"
EVENT_ERROR = "error"

# Client -> server events
EVENT_UPDATE_ORDER_STATUS = "updateOrderStatus"


def envelope(event: str, data: Any) -> dict[str, Any]:
    return {"event": event, "data": data}


class BaseRealtimeChannel(ABC):
    """Abstract broadcast channel to connected staff clients."""

    @property
    @abstractmethod
    def connection_count(self) -> int:
        """Number of currently connected clients."""
        pass

    @abstractmethod
    async def broadcast(self, event: str, data: Any) -> int:
        """
        Send an event to every connected client.

        A failing client must not affect the others. Returns the number of
        clients the event reached.
        """
        pass
