"""
Mock Push Service

Simulates Web Push delivery for development.
No notifications leave the process - they are logged and kept in
``sent`` so they can be inspected.
"""

import logging
import random
import threading
import time
from typing import Any, Iterable, Optional

from orderdesk.models import PushSubscription
from orderdesk.services.push.base import BasePushService, PushResult

logger = logging.getLogger(__name__)


class MockPushService(BasePushService):
    """Mock push service for development and tests."""

    def __init__(
        self,
        failure_rate: float = 0.0,
        latency: float = 0.0,
        expired_endpoints: Optional[Iterable[str]] = None,
    ):
        self.failure_rate = failure_rate
        self.latency = latency
        self.expired_endpoints = set(expired_endpoints or ())
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()
        logger.info(f"MockPushService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def public_key(self) -> Optional[str]:
        return "mock-vapid-public-key"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def deliver(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        """Simulate sending a push notification."""
        if self.latency:
            time.sleep(self.latency)

        endpoint = subscription.endpoint

        if endpoint in self.expired_endpoints:
            logger.info(f"Mock push endpoint gone: {endpoint}")
            return PushResult(
                success=False,
                endpoint=endpoint,
                status_code=410,
                error_message="Simulated expired subscription",
                expired=True,
                provider="mock",
            )

        if self._should_fail():
            logger.warning(f"Mock push failed (simulated) to {endpoint}")
            return PushResult(
                success=False,
                endpoint=endpoint,
                status_code=500,
                error_message="Simulated push failure",
                provider="mock",
            )

        with self._lock:
            self.sent.append((endpoint, payload))
        logger.info(f"Mock push sent to {endpoint}: {payload.get('title')}")

        return PushResult(success=True, endpoint=endpoint, status_code=201, provider="mock")

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
