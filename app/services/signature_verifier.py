"""
Stripe webhook signature verification.

The raw request body is checked against the ``Stripe-Signature`` header
(``t=<unix ts>,v1=<hex HMAC-SHA256(secret, "<ts>.<body>")>``) using the
Stripe SDK before anything else touches it. Deliveries whose timestamp is
outside the tolerance window are rejected as replays.
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe

from app.config import BillingConfig
from app.core.errors import VerificationError

logger = logging.getLogger(__name__)


class SignatureVerifier:
    """Turns a signed raw body into a verified payload dict, or raises."""

    def __init__(self, config: BillingConfig):
        config.require("stripe_webhook_secret")
        self._secret = config.stripe_webhook_secret
        self._tolerance = config.webhook_tolerance_s

    def verify(self, raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not signature:
            raise VerificationError("BIL-VER-001", detail="No signature found")

        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise VerificationError(
                "BIL-VER-002", detail="Invalid signature: body is not valid UTF-8"
            )

        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self._secret, self._tolerance
            )
        except stripe.SignatureVerificationError as exc:
            raise VerificationError(
                "BIL-VER-002",
                detail=f"Invalid signature: {exc}",
                context={"signature_prefix": signature[:16]},
            )

        # Only parsed once the signature has been accepted
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise VerificationError("BIL-VER-003", detail=f"Invalid payload: {exc}")
        if not isinstance(payload, dict):
            raise VerificationError("BIL-VER-003", detail="Invalid payload: expected a JSON object")

        return payload
