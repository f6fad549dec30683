"""
Health check endpoint.

- GET /api/health: cheap: process alive, version, uptime, and whether
  billing configuration is complete.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.config import BillingConfig
from app.core.structured_logging import APP_VERSION, SERVICE_NAME, get_uptime_s
from app.services.factory import get_billing_config

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRED_BILLING_FIELDS = ("stripe_secret_key", "stripe_price_id", "stripe_webhook_secret")


@router.get("/health")
async def health_check(config: BillingConfig = Depends(get_billing_config)):
    """Cheap health check, no network calls."""
    missing = config.missing(*REQUIRED_BILLING_FIELDS)
    return {
        "status": "ok" if not missing else "degraded",
        "version": APP_VERSION,
        "service": SERVICE_NAME,
        "uptime_s": round(get_uptime_s(), 1),
        "billing_configured": not missing,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
