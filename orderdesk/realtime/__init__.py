"""
Real-time Channel

Staff clients follow orders live over WebSockets.
"""

from orderdesk.realtime.base import (
    BaseRealtimeChannel,
    envelope,
    EVENT_EXISTING_ORDERS,
    EVENT_NEW_ORDER,
    EVENT_ORDER_UPDATED,
    EVENT_ERROR,
    EVENT_UPDATE_ORDER_STATUS,
)
from orderdesk.realtime.websocket import ConnectionManager

__all__ = [
    "BaseRealtimeChannel",
    "ConnectionManager",
    "envelope",
    "EVENT_EXISTING_ORDERS",
    "EVENT_NEW_ORDER",
    "EVENT_ORDER_UPDATED",
    "EVENT_ERROR",
    "EVENT_UPDATE_ORDER_STATUS",
]
