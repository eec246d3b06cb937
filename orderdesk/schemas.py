"""
Pydantic Schemas for Request/Response Validation

Request bodies accepted by the API and the envelopes it returns.
Domain objects themselves live in orderdesk.models.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import Field, field_validator

from orderdesk.models import CamelModel, Order, OrderItem


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class CustomerCreate(CamelModel):
    """Customer block of a new order. All three fields are required."""
    name: str = Field(..., examples=["Jane Doe"])
    phone: str = Field(..., examples=["555-123-4567"])
    address: str = Field(..., examples=["12 Main St"])

    @field_validator("name", "phone", "address")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class OrderCreate(CamelModel):
    """Request schema for placing a new order."""
    customer: CustomerCreate
    items: List[OrderItem] = Field(..., min_length=1)
    special_instructions: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[str] = Field(None, examples=["COD", "card"])

    @field_validator("special_instructions", "payment_method")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class StatusUpdate(CamelModel):
    """Body of PUT /api/orders/{id}/status."""
    status: str


class StatusUpdateEvent(CamelModel):
    """Payload of the client-to-server ``updateOrderStatus`` socket event."""
    order_id: str
    new_status: str


class StaffLogin(CamelModel):
    """Staff login credentials."""
    staff_id: str
    password: str


class Unsubscribe(CamelModel):
    """Body of DELETE /api/subscribe."""
    endpoint: str = Field(..., min_length=1)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderCreateResponse(CamelModel):
    """Response after successfully placing an order."""
    success: bool = True
    message: str
    order_id: str
    order: Order


class StaffPublic(CamelModel):
    """Staff member as shown to the client."""
    id: str
    name: str
    role: str


class StaffLoginResponse(CamelModel):
    """Successful login, with the key the browser needs to subscribe."""
    message: str
    staff: StaffPublic
    push_public_key: Optional[str] = None


class SubscribeResponse(CamelModel):
    message: str
    created: bool


class UnsubscribeResponse(CamelModel):
    message: str
    removed: bool


class PublicKeyResponse(CamelModel):
    public_key: Optional[str] = None


class StatsResponse(CamelModel):
    """Order counters for the staff dashboard."""
    total_orders: int
    active_orders: int


class ErrorResponse(CamelModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    storage: str
    push_service: str
    realtime_connections: int
    timestamp: datetime
