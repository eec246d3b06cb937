"""
Order Store

Owns the order collection. Every mutation is a single locked
read-modify-write against the storage backend, so concurrent requests
never lose each other's updates.
"""

import logging
from typing import Callable, Optional

from orderdesk.models import Order, OrderDraft, OrderStatus, utcnow
from orderdesk.storage import BaseStorage, Record

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = "orders"
ORDER_ID_PREFIX = "ORD-"


def _id_millis(order_id: str) -> int:
    try:
        return int(order_id.removeprefix(ORDER_ID_PREFIX))
    except ValueError:
        return 0


class OrderStore:
    """Create, list, fetch and re-status orders."""

    def __init__(self, storage: BaseStorage, collection: str = ORDERS_COLLECTION):
        self._storage = storage
        self.collection = collection

    @staticmethod
    def _next_id(records: list[Record], now_ms: int) -> str:
        """Timestamp id, bumped past the newest existing id so ids stay unique and increasing."""
        last = max((_id_millis(r.get("id", "")) for r in records), default=0)
        return f"{ORDER_ID_PREFIX}{max(now_ms, last + 1)}"

    async def create(self, draft: OrderDraft) -> Order:
        """Assign id and timestamps, append and persist."""
        async with self._storage.locked(self.collection):
            records = await self._storage.read(self.collection)
            now = utcnow()
            order = Order.model_validate({
                **draft.model_dump(),
                "id": self._next_id(records, int(now.timestamp() * 1000)),
                "created_at": now,
                "updated_at": now,
            })
            records.append(order.model_dump(mode="json"))
            await self._storage.write(self.collection, records)

        logger.debug(f"Stored order {order.id}")
        return order

    async def get_all(self, status: Optional[OrderStatus] = None) -> list[Order]:
        """All orders in insertion order, optionally filtered by status."""
        records = await self._storage.read(self.collection)
        orders = [Order.model_validate(r) for r in records]
        if status is not None:
            orders = [o for o in orders if o.status == status]
        return orders

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        records = await self._storage.read(self.collection)
        for record in records:
            if record.get("id") == order_id:
                return Order.model_validate(record)
        return None

    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        guard: Optional[Callable[[Order], None]] = None,
    ) -> Optional[Order]:
        """
        Set an order's status and bump ``updated_at``.

        ``guard`` is called with the current order while the lock is held
        and may raise to veto the change. Returns None if the id is unknown.
        """
        async with self._storage.locked(self.collection):
            records = await self._storage.read(self.collection)
            for index, record in enumerate(records):
                if record.get("id") != order_id:
                    continue

                current = Order.model_validate(record)
                if guard is not None:
                    guard(current)

                updated = current.model_copy(update={"status": new_status, "updated_at": utcnow()})
                records[index] = updated.model_dump(mode="json")
                await self._storage.write(self.collection, records)
                return updated

        return None
