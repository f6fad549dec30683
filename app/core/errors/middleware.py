"""
FastAPI exception handler for BillingError.

Catches BillingError, looks up the registry, logs at the registered
severity, and returns ``{"error": <message>}``. Unknown codes get a safe
fallback.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import BillingError
from app.core.errors.registry import error_registry

logger = logging.getLogger(__name__)


def public_message(exc: BillingError) -> str:
    """Message safe to return to the caller for *exc*."""
    entry = error_registry.get(exc.code)
    if entry is None:
        return "An unexpected error occurred."
    if entry.expose_detail and exc.detail:
        return exc.detail
    return entry.safe_message


def error_response(
    exc: BillingError,
    status_code: Optional[int] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Log *exc* and render it as a JSON error response.

    ``status_code`` overrides the registered status for surfaces with a
    fixed error contract (the session endpoint always answers 400).
    """
    entry = error_registry.get(exc.code)

    if entry is None:
        logger.error(
            "unregistered_error_code",
            extra={"error.code": exc.code, "error.message": exc.detail},
        )
        return JSONResponse(
            status_code=status_code or 500,
            content={"error": public_message(exc)},
            headers=headers,
        )

    log_extra = {
        "error.code": exc.code,
        "error.kind": type(exc).__name__,
        "error.message_safe": entry.safe_message,
        "error.message": exc.detail,
        "error.retryable": entry.retryable,
        **{f"error.ctx.{k}": v for k, v in exc.context.items()},
    }
    if entry.severity in ("ERROR", "CRITICAL") and entry.remediation:
        log_extra["error.remediation"] = entry.remediation
    _severity_to_log_fn(entry.severity)(entry.title, extra=log_extra)

    return JSONResponse(
        status_code=status_code or entry.http_status,
        content={"error": public_message(exc)},
        headers=headers,
    )


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Convert BillingError into a structured JSON response."""
    return error_response(exc)


def _severity_to_log_fn(severity: str):
    """Map registry severity to logger method."""
    return {
        "DEBUG": logger.debug,
        "INFO": logger.info,
        "WARN": logger.warning,
        "ERROR": logger.error,
        "CRITICAL": logger.critical,
    }.get(severity, logger.error)
