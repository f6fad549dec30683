"""
Billing Service Configuration
=============================

PURPOSE:
    Pydantic-Settings based configuration for the billing webhook service.
    All settings can be overridden via environment variables (BILLING_ prefix).

    Components never read ``settings`` directly. They receive a
    ``BillingConfig`` snapshot in their constructor and call
    ``require()`` for the fields they cannot run without, so a
    misconfigured deployment fails with one error naming every
    missing value.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic_settings import BaseSettings

from app.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Canonical quotas per plan (tasks a user may hold)
DEFAULT_FREE_TASKS_LIMIT = 100
DEFAULT_PREMIUM_TASKS_LIMIT = 10000


class Settings(BaseSettings):
    """Process-level settings loaded once at startup."""

    app_name: str = "billing-webhooks"
    debug: bool = False

    data_directory: str = "/data"

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_price_id: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    webhook_tolerance_s: int = 300  # Replay window for Stripe-Signature timestamps

    # Authentication provider (GoTrue-compatible /auth/v1/user)
    auth_url: Optional[str] = None
    auth_api_key: Optional[str] = None
    auth_cache_ttl: int = 60  # seconds

    # Where the browser lands after checkout/portal when no Origin header is sent
    app_base_url: str = "http://localhost:3000"

    # Plan quotas
    free_tasks_limit: int = DEFAULT_FREE_TASKS_LIMIT
    premium_tasks_limit: int = DEFAULT_PREMIUM_TASKS_LIMIT

    # Drop subscription events older than the last one applied to an account
    enforce_event_ordering: bool = True

    class Config:
        env_file = ".env"
        env_prefix = "BILLING_"


@dataclass(frozen=True)
class BillingConfig:
    """Immutable configuration handed to each billing component."""

    stripe_secret_key: Optional[str] = None
    stripe_price_id: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    webhook_tolerance_s: int = 300
    app_base_url: str = "http://localhost:3000"
    free_tasks_limit: int = DEFAULT_FREE_TASKS_LIMIT
    premium_tasks_limit: int = DEFAULT_PREMIUM_TASKS_LIMIT
    enforce_event_ordering: bool = True

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "BillingConfig":
        source = source or settings
        return cls(
            stripe_secret_key=source.stripe_secret_key,
            stripe_price_id=source.stripe_price_id,
            stripe_webhook_secret=source.stripe_webhook_secret,
            webhook_tolerance_s=source.webhook_tolerance_s,
            app_base_url=source.app_base_url,
            free_tasks_limit=source.free_tasks_limit,
            premium_tasks_limit=source.premium_tasks_limit,
            enforce_event_ordering=source.enforce_event_ordering,
        )

    def missing(self, *fields: str) -> List[str]:
        """Return the names of *fields* that are unset or blank."""
        return [name for name in fields if not (getattr(self, name) or "").strip()]

    def require(self, *fields: str) -> "BillingConfig":
        """Raise ConfigurationError listing every missing field, else return self."""
        absent = self.missing(*fields)
        if absent:
            env_names = ", ".join(f"BILLING_{name.upper()}" for name in absent)
            raise ConfigurationError(
                "BIL-CFG-001",
                detail=f"Missing required configuration: {env_names}",
                context={"missing": absent},
            )
        return self


settings = Settings()

logger.info(
    "Billing configuration loaded: stripe=%s webhook_secret=%s price=%s",
    bool(settings.stripe_secret_key),
    bool(settings.stripe_webhook_secret),
    bool(settings.stripe_price_id),
)
