"""
Push Service Abstract Base Class

Defines the interface for delivering Web Push notifications to staff
browsers. Supports both Mock (development) and WebPush (production)
implementations.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from orderdesk.models import PushSubscription


@dataclass
class PushResult:
    """Result from delivering one push notification."""
    success: bool
    endpoint: str
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    expired: bool = False
    provider: str = "unknown"


class BasePushService(ABC):
    """Abstract base class for push services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @property
    def public_key(self) -> Optional[str]:
        """VAPID public key browsers subscribe with, if any."""
        return None

    @abstractmethod
    def deliver(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        """
        Deliver one notification, blocking until the push service answers.

        Must not raise for delivery failures; report them in the result.
        """
        pass

    async def send(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        """Deliver one notification without blocking the event loop."""
        return await asyncio.to_thread(self.deliver, subscription, payload)

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service readiness."""
        pass
