"""
Web Push Service

Production implementation using pywebpush with VAPID authentication.
Endpoints answering 404 or 410 are reported as expired so the caller
can drop them from the subscription registry.
"""

import json
import logging
from typing import Any, Optional

from pywebpush import WebPushException, webpush

from orderdesk.core.config import Settings, get_settings
from orderdesk.models import PushSubscription
from orderdesk.services.push.base import BasePushService, PushResult

logger = logging.getLogger(__name__)

EXPIRED_STATUS_CODES = (404, 410)


class WebPushService(BasePushService):
    """Web Push delivery signed with the configured VAPID key pair."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        if not self.settings.vapid_private_key:
            logger.warning("VAPID private key not configured - push delivery will fail")

        logger.info("WebPushService initialized")

    @property
    def provider_name(self) -> str:
        return "webpush"

    @property
    def public_key(self) -> Optional[str]:
        return self.settings.vapid_public_key

    def deliver(self, subscription: PushSubscription, payload: dict[str, Any]) -> PushResult:
        endpoint = subscription.endpoint

        if not self.settings.vapid_private_key:
            return PushResult(
                success=False,
                endpoint=endpoint,
                error_message="VAPID private key not configured",
                provider=self.provider_name,
            )

        try:
            response = webpush(
                subscription_info=subscription.model_dump(by_alias=True, exclude_none=True),
                data=json.dumps(payload),
                vapid_private_key=self.settings.vapid_private_key,
                vapid_claims={"sub": self.settings.vapid_claims_email},
                ttl=self.settings.push_ttl,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            expired = status_code in EXPIRED_STATUS_CODES
            if expired:
                logger.info(f"Push endpoint expired ({status_code}): {endpoint}")
            else:
                logger.error(f"Web Push error for {endpoint}: {e}")
            return PushResult(
                success=False,
                endpoint=endpoint,
                status_code=status_code,
                error_message=str(e),
                expired=expired,
                provider=self.provider_name,
            )
        except Exception as e:
            logger.exception(f"Unexpected Web Push error for {endpoint}")
            return PushResult(
                success=False,
                endpoint=endpoint,
                error_message=str(e),
                provider=self.provider_name,
            )

        logger.info(f"Push notification sent to {endpoint}")
        return PushResult(
            success=True,
            endpoint=endpoint,
            status_code=getattr(response, "status_code", None),
            provider=self.provider_name,
        )

    async def health_check(self) -> bool:
        return bool(self.settings.vapid_private_key and self.settings.vapid_public_key)
