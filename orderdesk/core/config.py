"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports three modes:
    - DEVELOPMENT: Uses the mock push service (no VAPID keys needed)
    - STAGING / PRODUCTION: Sends real Web Push notifications

The ENV_MODE variable controls which push service is instantiated, so the
same code runs locally without any browser subscriptions or keys.

Usage:
    from orderdesk.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # Mock push delivery
    else:
        # Real Web Push
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with the mock push service
        PRODUCTION: Live environment with real Web Push delivery
        STAGING: Pre-production with real Web Push and test subscribers
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class StorageBackend(str, Enum):
    """Where orders and subscriptions are kept."""
    MEMORY = "memory"
    FILE = "file"


class PushDispatchMode(str, Enum):
    """How push notifications leave the web process."""
    INLINE = "inline"
    CELERY = "celery"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    VAPID private keys should NEVER be committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="OrderDesk",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=3000,
        description="API server port"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # STORAGE
    # ==========================================================================

    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Persistence backend (memory or file)"
    )
    data_directory: str = Field(
        default="data",
        description="Directory for JSON data files"
    )
    storage_lock_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a data file lock"
    )

    # ==========================================================================
    # BUSINESS CONFIGURATION
    # ==========================================================================

    delivery_fee: float = Field(
        default=15.0,
        ge=0,
        description="Fixed delivery fee added to every order"
    )
    default_payment_method: str = Field(
        default="COD",
        description="Payment method used when the customer does not pick one"
    )
    strict_status_transitions: bool = Field(
        default=True,
        description="Enforce the forward-only order status state machine"
    )

    # ==========================================================================
    # STAFF SEED ACCOUNT
    # ==========================================================================

    staff_id: str = Field(
        default="staff",
        description="Login id of the seeded staff account"
    )
    staff_password: str = Field(
        default="password",
        description="Password of the seeded staff account (hashed at startup)"
    )
    staff_name: str = Field(
        default="Admin Staff",
        description="Display name of the seeded staff account"
    )
    staff_role: str = Field(
        default="Manager",
        description="Role of the seeded staff account"
    )

    # ==========================================================================
    # WEB PUSH (VAPID)
    # ==========================================================================

    vapid_public_key: Optional[str] = Field(
        default=None,
        description="VAPID public key handed to staff browsers"
    )
    vapid_private_key: Optional[str] = Field(
        default=None,
        description="VAPID private key used to sign push requests"
    )
    vapid_claims_email: str = Field(
        default="mailto:orders@example.com",
        description="Contact URI placed in the VAPID 'sub' claim"
    )
    push_click_url: str = Field(
        default="http://127.0.0.1:5500",
        description="URL opened when a staff member clicks a notification"
    )
    push_ttl: int = Field(
        default=3600,
        description="Seconds the push service may hold an undelivered message"
    )

    # ==========================================================================
    # NOTIFICATION DELIVERY
    # ==========================================================================

    push_dispatch: PushDispatchMode = Field(
        default=PushDispatchMode.INLINE,
        description="Deliver push notifications in-process or through Celery"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery"
    )
    notification_workers: int = Field(
        default=4,
        ge=1,
        description="Concurrent notification delivery workers"
    )
    notification_queue_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum pending notification jobs"
    )
    notification_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds a single notification job may run"
    )
    realtime_send_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for one WebSocket client to accept a message"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def use_real_services(self) -> bool:
        """Check if real external services should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.vapid_public_key:
                missing.append("VAPID_PUBLIC_KEY")
            if not self.vapid_private_key:
                missing.append("VAPID_PRIVATE_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once per process so every component sees the
    same configuration.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-30s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.WARNING)

    return logging.getLogger("orderdesk")
