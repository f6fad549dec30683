from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import BillingConfig, settings
from app.routers import billing, health, webhooks
from app.auth.bearer_auth import close_http_client
from app.core.database import init_db, close_db
from app.core.structured_logging import APP_VERSION, setup_logging
from app.core.errors import BillingError
from app.core.errors.registry import error_registry
from app.core.errors.middleware import billing_error_handler
from app.core.log_middleware import CorrelationMiddleware

# Initialize structured logging before any logger calls
setup_logging(log_dir=os.path.join(settings.data_directory, "logs"))

logger = logging.getLogger(__name__)

API_TITLE = "Billing Webhooks API"
API_VERSION = APP_VERSION

API_DESCRIPTION = """
## Subscription billing

Keeps each account's plan and task quota in step with its Stripe subscription.

- `POST /api/billing/session`: start a checkout or open the billing portal
- `POST /api/webhooks/stripe`: Stripe event receiver (signed)
"""

TAGS_METADATA = [
    {
        "name": "health",
        "description": "Health check endpoint for monitoring. No authentication required.",
    },
    {
        "name": "billing",
        "description": "Checkout and billing-portal sessions. **Requires a bearer access token.**",
    },
    {
        "name": "webhooks",
        "description": "Stripe webhook receiver. Authenticated by the Stripe-Signature header.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting %s v%s...", API_TITLE, API_VERSION)

    error_registry.load()

    # Misconfiguration is reported here and again on every affected request
    missing = BillingConfig.from_settings().missing(*health.REQUIRED_BILLING_FIELDS)
    if missing:
        logger.critical(
            "Billing configuration incomplete, missing: %s",
            ", ".join(f"BILLING_{name.upper()}" for name in missing),
        )

    init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down %s...", API_TITLE)
    await close_http_client()
    close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        openapi_tags=TAGS_METADATA,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Correlation ID middleware (request_id + correlation_id in every log)
    app.add_middleware(CorrelationMiddleware)

    # Structured error handler for BillingError
    app.add_exception_handler(BillingError, billing_error_handler)

    # Catch-all handler so unhandled exceptions return JSON (not bare text)
    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        entry = error_registry.get("BIL-SYS-001")
        return JSONResponse(
            status_code=500,
            content={"error": entry.safe_message if entry else "Internal Server Error"},
        )

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(billing.router, prefix="/api", tags=["billing"])
    app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])

    return app


app = create_app()
