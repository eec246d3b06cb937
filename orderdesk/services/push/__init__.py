"""
Push Service Factory

Returns Mock or WebPush service based on ENV_MODE.
"""

import logging
from functools import lru_cache
from typing import Optional

from orderdesk.core.config import Settings, get_settings
from orderdesk.services.push.base import BasePushService, PushResult
from orderdesk.services.push.mock import MockPushService
from orderdesk.services.push.webpush import WebPushService

logger = logging.getLogger(__name__)


def build_push_service(settings: Optional[Settings] = None) -> BasePushService:
    """Create the push service for the given settings' ENV_MODE."""
    settings = settings or get_settings()

    if settings.is_development:
        logger.info("Push Service: Using MockPushService (development mode)")
        return MockPushService(failure_rate=0.05)
    else:
        logger.info(f"Push Service: Using WebPushService ({settings.env_mode.value} mode)")
        return WebPushService(settings)


@lru_cache()
def get_push_service() -> BasePushService:
    """Get the process-wide push service for the global settings."""
    return build_push_service(get_settings())


def reset_push_service() -> None:
    """Clear the cached service instance."""
    get_push_service.cache_clear()


__all__ = [
    "build_push_service",
    "get_push_service",
    "reset_push_service",
    "BasePushService",
    "PushResult",
    "MockPushService",
    "WebPushService",
]
