"""
Domain Exceptions

Every failure the order lifecycle can report is an OrderDeskError.
Each subclass carries the HTTP status and error label the API boundary
uses when converting it into an ErrorResponse.
"""

from typing import Any, Optional


class OrderDeskError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class OrderValidationError(OrderDeskError):
    """Order input is missing required fields or carries invalid values."""

    status_code = 400
    error = "Validation Error"


class InvalidStatusError(OrderDeskError):
    """Requested status is not one of the known order statuses."""

    status_code = 400
    error = "Invalid Status"


class InvalidTransitionError(OrderDeskError):
    """Requested status is known but not reachable from the current one."""

    status_code = 400
    error = "Invalid Transition"


class OrderNotFoundError(OrderDeskError):
    """No order with the given id exists."""

    status_code = 404
    error = "Not Found"

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", {"order_id": order_id})
        self.order_id = order_id


class AuthenticationError(OrderDeskError):
    """Staff credentials did not match. The message never says which part."""

    status_code = 401
    error = "Unauthorized"

    def __init__(self, message: str = "Invalid staff ID or password"):
        super().__init__(message)


class PersistenceError(OrderDeskError):
    """Reading or writing the backing store failed."""

    status_code = 500
    error = "Persistence Error"


class DeliveryError(OrderDeskError):
    """A push or real-time delivery failed. Never surfaced to a request."""

    status_code = 502
    error = "Delivery Error"
