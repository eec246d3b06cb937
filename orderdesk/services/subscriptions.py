"""
Subscription Registry

Push endpoints registered by staff browsers, de-duplicated by endpoint.
Dead endpoints are removed either explicitly (unsubscribe) or when the
push service reports them expired.
"""

import logging
from typing import Iterable

from orderdesk.models import PushSubscription
from orderdesk.storage import BaseStorage

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_COLLECTION = "subscriptions"


class SubscriptionRegistry:
    """Owns the list of push subscriptions."""

    def __init__(self, storage: BaseStorage, collection: str = SUBSCRIPTIONS_COLLECTION):
        self._storage = storage
        self.collection = collection

    async def add(self, subscription: PushSubscription) -> bool:
        """Register a subscription. Returns False if the endpoint is already known."""
        async with self._storage.locked(self.collection):
            records = await self._storage.read(self.collection)
            if any(r.get("endpoint") == subscription.endpoint for r in records):
                logger.info("Subscription already exists")
                return False
            records.append(subscription.model_dump(mode="json"))
            await self._storage.write(self.collection, records)

        logger.info(f"New push subscription added ({len(records)} total)")
        return True

    async def all(self) -> list[PushSubscription]:
        records = await self._storage.read(self.collection)
        return [PushSubscription.model_validate(r) for r in records]

    async def remove(self, endpoint: str) -> bool:
        """Drop one subscription. Returns False if it was not registered."""
        return await self.prune([endpoint]) == 1

    async def prune(self, endpoints: Iterable[str]) -> int:
        """Drop every listed endpoint in one write. Returns how many were removed."""
        doomed = set(endpoints)
        if not doomed:
            return 0

        async with self._storage.locked(self.collection):
            records = await self._storage.read(self.collection)
            kept = [r for r in records if r.get("endpoint") not in doomed]
            removed = len(records) - len(kept)
            if removed:
                await self._storage.write(self.collection, kept)

        if removed:
            logger.info(f"Removed {removed} push subscription(s)")
        return removed
