"""
Service Wiring

Builds the service graph once per application and exposes it to
FastAPI routes through ``Depends``. Everything with state lives on the
container, not in module globals, so tests get a fresh graph per app.
"""

from dataclasses import dataclass
from typing import Optional

from argon2 import PasswordHasher
from fastapi import Request
from starlette.requests import HTTPConnection

from orderdesk.core.config import PushDispatchMode, Settings, get_settings
from orderdesk.realtime import ConnectionManager
from orderdesk.services import (
    NotificationDispatcher,
    NotificationFanout,
    OrderLifecycleManager,
    OrderStore,
    StaffDirectory,
    SubscriptionRegistry,
)
from orderdesk.services.push import BasePushService, build_push_service
from orderdesk.storage import BaseStorage, build_storage


@dataclass
class ServiceContainer:
    """All long-lived services of one application instance."""
    settings: Settings
    storage: BaseStorage
    orders: OrderStore
    subscriptions: SubscriptionRegistry
    staff: StaffDirectory
    channel: ConnectionManager
    push_service: BasePushService
    realtime_dispatcher: NotificationDispatcher
    push_dispatcher: NotificationDispatcher
    fanout: NotificationFanout
    manager: OrderLifecycleManager

    async def start(self) -> None:
        await self.realtime_dispatcher.start()
        await self.push_dispatcher.start()

    async def stop(self) -> None:
        await self.realtime_dispatcher.stop()
        await self.push_dispatcher.stop()


def build_services(
    settings: Optional[Settings] = None,
    storage: Optional[BaseStorage] = None,
    push_service: Optional[BasePushService] = None,
    password_hasher: Optional[PasswordHasher] = None,
) -> ServiceContainer:
    """Wire the service graph. Any external capability can be overridden."""
    settings = settings or get_settings()
    storage = storage or build_storage(settings)
    push_service = push_service or build_push_service(settings)

    orders = OrderStore(storage)
    subscriptions = SubscriptionRegistry(storage)
    channel = ConnectionManager(send_timeout=settings.realtime_send_timeout)

    realtime_dispatcher = NotificationDispatcher(
        name="realtime",
        workers=1,
        job_timeout=settings.notification_timeout,
        max_queue=settings.notification_queue_size,
    )
    push_dispatcher = NotificationDispatcher(
        name="push",
        workers=settings.notification_workers,
        job_timeout=settings.notification_timeout,
        max_queue=settings.notification_queue_size,
    )

    fanout = NotificationFanout(
        channel=channel,
        registry=subscriptions,
        push_service=push_service,
        realtime_dispatcher=realtime_dispatcher,
        push_dispatcher=push_dispatcher,
        click_url=settings.push_click_url,
        use_celery=settings.push_dispatch == PushDispatchMode.CELERY,
    )

    manager = OrderLifecycleManager(
        store=orders,
        fanout=fanout,
        delivery_fee=settings.delivery_fee,
        default_payment_method=settings.default_payment_method,
        strict_transitions=settings.strict_status_transitions,
    )

    return ServiceContainer(
        settings=settings,
        storage=storage,
        orders=orders,
        subscriptions=subscriptions,
        staff=StaffDirectory.from_settings(settings, hasher=password_hasher),
        channel=channel,
        push_service=push_service,
        realtime_dispatcher=realtime_dispatcher,
        push_dispatcher=push_dispatcher,
        fanout=fanout,
        manager=manager,
    )


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_services(conn: HTTPConnection) -> ServiceContainer:
    """Service container of the app handling this request or socket."""
    return conn.app.state.services


def get_manager(request: Request) -> OrderLifecycleManager:
    return get_services(request).manager


def get_registry(request: Request) -> SubscriptionRegistry:
    return get_services(request).subscriptions


def get_staff_directory(request: Request) -> StaffDirectory:
    return get_services(request).staff
