"""
Celery Tasks
Background delivery of Web Push notifications.

Expired endpoints are pruned from the shared subscription file, so the
web process and the workers must use STORAGE_BACKEND=file on the same
data directory.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone

from orderdesk.celery_worker import celery_app
from orderdesk.core.config import StorageBackend, get_settings
from orderdesk.core.exceptions import DeliveryError
from orderdesk.models import PushSubscription
from orderdesk.services.push import get_push_service
from orderdesk.services.subscriptions import SubscriptionRegistry
from orderdesk.storage import build_storage

logger = logging.getLogger(__name__)


def prune_subscription(endpoint: str) -> bool:
    """Remove an expired endpoint from the file-backed registry."""
    settings = get_settings()
    if settings.storage_backend != StorageBackend.FILE:
        logger.warning(f"Cannot prune {endpoint}: workers need STORAGE_BACKEND=file")
        return False
    registry = SubscriptionRegistry(build_storage(settings))
    return asyncio.run(registry.remove(endpoint))


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(DeliveryError,),
    retry_backoff=True
)
def deliver_push_notification(self, subscription_data: dict, payload: dict) -> dict:
    """
    Deliver one push notification.

    Transient failures raise DeliveryError so Celery retries with
    backoff; expired endpoints are pruned and not retried.

    Args:
        subscription_data: PushSubscription as JSON (camelCase)
        payload: Notification payload ``{title, body, url}``

    Returns:
        dict: Result of the delivery
    """
    task_id = self.request.id
    subscription = PushSubscription.model_validate(subscription_data)
    endpoint = subscription.endpoint

    logger.info(f"Task {task_id}: Delivering '{payload.get('title')}' to {endpoint}")
    start_time = time.time()

    result = get_push_service().deliver(subscription, payload)
    elapsed = round(time.time() - start_time, 3)

    if result.expired:
        pruned = prune_subscription(endpoint)
        logger.info(f"Task {task_id}: Endpoint expired, pruned={pruned}")
        return {
            "success": False,
            "endpoint": endpoint,
            "expired": True,
            "pruned": pruned,
            "processing_time_seconds": elapsed,
        }

    if not result.success:
        logger.warning(f"Task {task_id}: Delivery to {endpoint} failed after {elapsed}s - {result.error_message}")
        raise DeliveryError(result.error_message or "Push delivery failed")

    logger.info(f"Task {task_id}: Delivered to {endpoint} in {elapsed}s")
    return {
        "success": True,
        "endpoint": endpoint,
        "expired": False,
        "task_id": task_id,
        "processing_time_seconds": elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
