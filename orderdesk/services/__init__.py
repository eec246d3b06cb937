"""
                        Services Module

Business logic behind the API. Each external capability (storage,
push delivery, real-time channel) is injected, so the same services run
against mocks in development and real backends in production.

Services:
    - order_store: order persistence with serialized mutations
    - subscriptions: push subscription registry
    - staff: credential verification
    - dispatcher: bounded fire-and-forget job queue
    - fanout: real-time + push notification fan-out
    - lifecycle: order placement and status workflow
    - push: Mock / Web Push delivery
"""

from orderdesk.services.dispatcher import NotificationDispatcher
from orderdesk.services.fanout import NotificationFanout
from orderdesk.services.lifecycle import OrderLifecycleManager
from orderdesk.services.order_store import OrderStore
from orderdesk.services.staff import StaffDirectory
from orderdesk.services.subscriptions import SubscriptionRegistry

__all__ = [
    "NotificationDispatcher",
    "NotificationFanout",
    "OrderLifecycleManager",
    "OrderStore",
    "StaffDirectory",
    "SubscriptionRegistry",
]
