"""
Notification Fan-out

Turns order events into deliveries:
    - new order     -> ``newOrder`` on the real-time channel + one push per subscription
    - status update -> ``orderUpdated`` on the real-time channel only

Nothing here waits for delivery; jobs are handed to dispatchers and the
caller returns immediately. Real-time broadcasts go through their own
dispatcher so staff screens see events in the order they happened.
"""

import asyncio
import logging
from typing import Any, Optional

from orderdesk.models import Order, PushSubscription
from orderdesk.realtime import BaseRealtimeChannel, EVENT_NEW_ORDER, EVENT_ORDER_UPDATED
from orderdesk.services.dispatcher import NotificationDispatcher
from orderdesk.services.push import BasePushService, PushResult
from orderdesk.services.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)


def build_push_payload(order: Order, click_url: str) -> dict[str, Any]:
    """Notification shown to staff for a new order."""
    customer = order.customer
    return {
        "title": f"New Order: {order.id}",
        "body": (
            f"Customer: {customer.name}, Items: {len(order.items)} | "
            f"Address: {customer.address}, Phone: {customer.phone}"
        ),
        "url": click_url,
    }


def order_event_data(order: Order) -> dict[str, Any]:
    return order.model_dump(mode="json", by_alias=True)


class NotificationFanout:
    """Broadcasts order events to staff screens and push subscribers."""

    def __init__(
        self,
        channel: BaseRealtimeChannel,
        registry: SubscriptionRegistry,
        push_service: BasePushService,
        realtime_dispatcher: NotificationDispatcher,
        push_dispatcher: NotificationDispatcher,
        click_url: str,
        use_celery: bool = False,
    ):
        self.channel = channel
        self.registry = registry
        self.push_service = push_service
        self.realtime_dispatcher = realtime_dispatcher
        self.push_dispatcher = push_dispatcher
        self.click_url = click_url
        self.use_celery = use_celery

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def broadcast_new_order(self, order: Order) -> None:
        data = order_event_data(order)
        self.realtime_dispatcher.submit(
            f"realtime {EVENT_NEW_ORDER} {order.id}",
            lambda: self.channel.broadcast(EVENT_NEW_ORDER, data),
        )
        payload = build_push_payload(order, self.click_url)
        self.push_dispatcher.submit(
            f"push fan-out {order.id}",
            lambda: self._fan_out_push(order.id, payload),
        )

    def broadcast_status_update(self, order: Order) -> None:
        data = order_event_data(order)
        self.realtime_dispatcher.submit(
            f"realtime {EVENT_ORDER_UPDATED} {order.id}",
            lambda: self.channel.broadcast(EVENT_ORDER_UPDATED, data),
        )

    async def flush(self) -> None:
        """Wait for every queued delivery, including push jobs queued by fan-out jobs."""
        await self.realtime_dispatcher.join()
        await self.push_dispatcher.join()

    # =========================================================================
    # PUSH DELIVERY
    # =========================================================================

    async def _fan_out_push(self, order_id: str, payload: dict[str, Any]) -> None:
        """Queue one isolated delivery job per subscription."""
        subscriptions = await self.registry.all()
        if not subscriptions:
            logger.debug(f"No push subscribers for order {order_id}")
            return

        logger.info(f"Sending push for order {order_id} to {len(subscriptions)} subscriber(s)")
        for subscription in subscriptions:
            if self.use_celery:
                job = self._make_celery_job(subscription, payload)
            else:
                job = self._make_push_job(subscription, payload)
            self.push_dispatcher.submit(f"push {order_id} -> {subscription.endpoint}", job)

    def _make_push_job(self, subscription: PushSubscription, payload: dict[str, Any]):
        async def job() -> Optional[PushResult]:
            return await self.deliver(subscription, payload)
        return job

    def _make_celery_job(self, subscription: PushSubscription, payload: dict[str, Any]):
        async def job() -> None:
            # Imported lazily so the web process only needs Celery in celery mode.
            from orderdesk.tasks import deliver_push_notification

            await asyncio.to_thread(
                deliver_push_notification.delay,
                subscription.model_dump(mode="json", by_alias=True),
                payload,
            )
        return job

    async def deliver(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        """Send one push, dropping the subscription if the endpoint is gone."""
        result = await self.push_service.send(subscription, payload)
        if result.expired:
            await self.registry.remove(subscription.endpoint)
        elif not result.success:
            logger.error(f"Error sending push notification to {subscription.endpoint}: {result.error_message}")
        return result
