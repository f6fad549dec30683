"""
Structured billing errors.

BillingError is the base exception for all structured errors. Raise one of
its subclasses with an error code from the registry, and the error handler
will produce a ``{"error": <message>}`` JSON response with the registered
HTTP status.

Usage:
    from app.core.errors import VerificationError
    raise VerificationError("BIL-VER-002", detail="No signatures found matching the expected signature")
"""

from __future__ import annotations

import re

CODE_PATTERN = re.compile(r"^BIL-[A-Z]{2,6}-\d{3}$")


class BillingError(Exception):
    """Structured application error tied to the error registry.

    Args:
        code: Registry error code, e.g. "BIL-VER-001".
        detail: Human-readable detail. Only exposed to callers when the
            registry entry sets ``expose_detail``.
        context: Arbitrary key-value context for structured logging.
    """

    def __init__(
        self,
        code: str,
        detail: str | None = None,
        context: dict | None = None,
    ) -> None:
        if not CODE_PATTERN.match(code):
            raise ValueError(f"Invalid error code format: {code!r}")
        self.code = code
        self.detail = detail
        self.context = context or {}
        super().__init__(f"{code}: {detail}" if detail else code)

    @property
    def message(self) -> str:
        return self.detail or self.code


class AuthenticationError(BillingError):
    """Caller presented no credential or one the auth provider rejected."""


class ConfigurationError(BillingError):
    """A required secret or identifier is absent from the deployment."""


class VerificationError(BillingError):
    """Webhook signature missing, malformed, mismatched or outside tolerance."""


class ResolutionError(BillingError):
    """No account matches the internal id or provider customer id."""


class UpstreamError(BillingError):
    """The payment provider or auth provider rejected or failed a call."""


class PersistenceError(BillingError):
    """An account write failed."""


__all__ = [
    "CODE_PATTERN",
    "BillingError",
    "AuthenticationError",
    "ConfigurationError",
    "VerificationError",
    "ResolutionError",
    "UpstreamError",
    "PersistenceError",
]
