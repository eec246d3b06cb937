"""
Domain Models

Orders, push subscriptions and staff members as pydantic models.
Field names are snake_case in Python and in the data files; the wire
format (HTTP and WebSocket) uses camelCase aliases.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# ORDER STATUS
# =============================================================================

class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    RECEIVED = "received"
    PREPARING = "preparing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.RECEIVED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = frozenset({OrderStatus.RECEIVED, OrderStatus.PREPARING})


# =============================================================================
# ORDERS
# =============================================================================

class Customer(CamelModel):
    """Who the order is for and where it goes."""
    name: str
    phone: str
    address: str


class OrderItem(CamelModel):
    """Single line of an order."""
    name: Optional[str] = None
    price: float = Field(..., ge=0, allow_inf_nan=False)
    qty: int = Field(default=1, ge=1)

    @property
    def line_total(self) -> float:
        return self.price * self.qty


class OrderDraft(CamelModel):
    """A validated, priced order that has not been stored yet."""
    customer: Customer
    items: list[OrderItem]
    special_instructions: Optional[str] = None
    payment_method: str
    subtotal: float
    delivery_fee: float
    total: float
    status: OrderStatus = OrderStatus.RECEIVED


class Order(OrderDraft):
    """
    A stored order.

    Created on placement, mutated only through status updates and never
    deleted. ``total`` always equals ``subtotal + delivery_fee``.
    """
    id: str
    created_at: datetime
    updated_at: datetime

    def __repr__(self) -> str:
        return f"<Order {self.id} - {self.customer.name} - {self.status.value}>"


# =============================================================================
# PUSH SUBSCRIPTIONS
# =============================================================================

class PushSubscription(CamelModel):
    """
    Browser push endpoint registered by a staff client.

    Mirrors the PushSubscription JSON produced by ``subscription.toJSON()``
    in the browser; ``endpoint`` is the identity used for de-duplication.
    """
    endpoint: str = Field(..., min_length=1)
    keys: Optional[dict[str, str]] = None
    expiration_time: Optional[float] = None


# =============================================================================
# STAFF
# =============================================================================

class StaffMember(CamelModel):
    """Staff account. Only the Argon2 hash of the password is kept."""
    id: str
    name: str
    role: str
    password_hash: str = Field(..., exclude=True, repr=False)
