"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from orderdesk.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from orderdesk.core.exceptions import (
    OrderDeskError,
    OrderValidationError,
    InvalidStatusError,
    InvalidTransitionError,
    OrderNotFoundError,
    AuthenticationError,
    PersistenceError,
    DeliveryError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "OrderDeskError",
    "OrderValidationError",
    "InvalidStatusError",
    "InvalidTransitionError",
    "OrderNotFoundError",
    "AuthenticationError",
    "PersistenceError",
    "DeliveryError",
]
