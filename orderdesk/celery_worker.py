"""
Celery Worker Configuration
Redis-backed worker for push delivery when PUSH_DISPATCH=celery.

Workers prune expired subscriptions from the shared JSON files, so they
must run with STORAGE_BACKEND=file on the web process's DATA_DIRECTORY:
    celery -A orderdesk.celery_worker worker --loglevel=info
"""

from celery import Celery

from orderdesk.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'orderdesk_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['orderdesk.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # One process per in-process delivery worker the web app would use
    worker_concurrency=settings.notification_workers,
    worker_prefetch_multiplier=1,

    # A push request may not outlive the per-job timeout of the inline path
    task_soft_time_limit=settings.notification_timeout,
    task_time_limit=settings.notification_timeout * 2,

    # Pushes are fire-and-forget; results only help debugging
    result_expires=settings.push_ttl,
    task_ignore_result=not settings.debug,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
