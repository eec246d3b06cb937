"""
Order Lifecycle Manager

Entry point for everything that happens to an order:
    - place_order: validate input, price it, store it, announce it
    - change_status: check the state machine, store it, announce it
    - list/get/stats for the staff screens

Status workflow (strict mode):

    received -> preparing -> delivered
    received | preparing -> cancelled

``delivered`` and ``cancelled`` are terminal.
"""

import logging
import math
from typing import Any, Optional, Union

from pydantic import ValidationError

from orderdesk.core.exceptions import (
    InvalidStatusError,
    InvalidTransitionError,
    OrderNotFoundError,
    OrderValidationError,
)
from orderdesk.models import Customer, Order, OrderDraft, OrderStatus
from orderdesk.schemas import OrderCreate, StatsResponse
from orderdesk.services.fanout import NotificationFanout
from orderdesk.services.order_store import OrderStore

logger = logging.getLogger(__name__)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into ``field.path: message; ...``."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{location}: {err.get('msg')}")
    return "; ".join(parts)


def parse_status(value: Any) -> OrderStatus:
    """Coerce a raw status value, raising InvalidStatusError for unknown ones."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        raise InvalidStatusError(
            f"Invalid status {value!r}. Options: {OrderStatus.values()}",
            {"status": value},
        )


def calculate_order_totals(items: list, delivery_fee: float) -> dict[str, float]:
    """Calculate order subtotal and total."""
    subtotal = round(sum(item.line_total for item in items), 2)
    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "total": round(subtotal + delivery_fee, 2),
    }


class OrderLifecycleManager:
    """Coordinates the order store and notification fan-out."""

    def __init__(
        self,
        store: OrderStore,
        fanout: NotificationFanout,
        delivery_fee: float,
        default_payment_method: str = "COD",
        strict_transitions: bool = True,
    ):
        self.store = store
        self.fanout = fanout
        self.delivery_fee = delivery_fee
        self.default_payment_method = default_payment_method
        self.strict_transitions = strict_transitions

    # =========================================================================
    # PLACING ORDERS
    # =========================================================================

    def build_draft(self, data: Union[OrderCreate, dict[str, Any]]) -> OrderDraft:
        """Validate raw input and price it. Raises OrderValidationError."""
        if not isinstance(data, OrderCreate):
            if not isinstance(data, dict):
                raise OrderValidationError("Order body must be a JSON object")
            try:
                data = OrderCreate.model_validate(data)
            except ValidationError as e:
                raise OrderValidationError(
                    f"Missing or invalid order fields: {describe_validation_error(e)}",
                    {"errors": e.errors(include_url=False, include_context=False)},
                )

        totals = calculate_order_totals(data.items, self.delivery_fee)
        if not math.isfinite(totals["total"]):
            raise OrderValidationError("Order total is too large")
        return OrderDraft(
            customer=Customer(**data.customer.model_dump()),
            items=data.items,
            special_instructions=data.special_instructions,
            payment_method=data.payment_method or self.default_payment_method,
            status=OrderStatus.RECEIVED,
            **totals,
        )

    async def place_order(self, data: Union[OrderCreate, dict[str, Any]]) -> Order:
        draft = self.build_draft(data)
        order = await self.store.create(draft)
        logger.info(f"New order received: {order.id} ({order.customer.name}, total {order.total:.2f})")

        self.fanout.broadcast_new_order(order)
        return order

    # =========================================================================
    # STATUS CHANGES
    # =========================================================================

    def _check_transition(self, new_status: OrderStatus):
        def guard(current: Order) -> None:
            if not self.strict_transitions:
                return
            if not current.status.can_transition_to(new_status):
                raise InvalidTransitionError(
                    f"Order {current.id} cannot move from "
                    f"'{current.status.value}' to '{new_status.value}'",
                    {"from": current.status.value, "to": new_status.value},
                )
        return guard

    async def change_status(self, order_id: str, new_status: Any) -> Order:
        status = parse_status(new_status)

        order = await self.store.update_status(order_id, status, guard=self._check_transition(status))
        if order is None:
            raise OrderNotFoundError(order_id)

        logger.info(f"Order {order_id} status updated to: {status.value}")
        self.fanout.broadcast_status_update(order)
        return order

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        order = await self.store.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(self, status: Optional[Any] = None) -> list[Order]:
        status_filter = parse_status(status) if status is not None else None
        return await self.store.get_all(status=status_filter)

    async def stats(self) -> StatsResponse:
        orders = await self.store.get_all()
        return StatsResponse(
            total_orders=len(orders),
            active_orders=sum(1 for o in orders if o.status.is_active),
        )
