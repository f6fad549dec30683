"""
Payment Provider Gateway: Stripe
================================

PURPOSE:
    Thin wrapper over the Stripe SDK for the three calls the billing flow
    makes:
    1. **create_customer()**: one Stripe customer per account. Idempotent
       per user id so a retried checkout after a failed linkage write
       reuses the same customer.
    2. **create_checkout_session()**: subscription-mode checkout.
    3. **create_portal_session()**: billing portal for existing subscribers.

    The API key is passed per call; the module-global ``stripe.api_key`` is
    never set. Any Stripe failure surfaces as ``UpstreamError`` and is not
    retried here.

CONFIGURATION (env vars with BILLING_ prefix):
    BILLING_STRIPE_SECRET_KEY : Stripe secret API key
"""

import logging
from typing import Any, Dict, Optional

import stripe

from app.config import BillingConfig
from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)

__all__ = ["PaymentProvider"]


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class PaymentProvider:
    """Stripe calls used by the session issuer and account resolver."""

    def __init__(self, config: BillingConfig):
        config.require("stripe_secret_key")
        self._api_key = config.stripe_secret_key

    def create_customer(
        self,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> str:
        try:
            customer = stripe.Customer.create(
                api_key=self._api_key,
                idempotency_key=f"customer-create-{user_id}",
                metadata={"user_id": user_id},
                **_drop_none({"email": email, "name": name}),
            )
        except stripe.StripeError as exc:
            raise self._upstream("Customer.create", exc, user_id=user_id)

        logger.info("Created Stripe customer %s for user %s", customer.id, user_id)
        return customer.id

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> str:
        logger.info(
            "Creating checkout session for customer %s with price %s", customer_id, price_id
        )
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                customer=customer_id,
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as exc:
            raise self._upstream("checkout.Session.create", exc, customer_id=customer_id)

        logger.info("Created checkout session %s", session.id)
        return session.url

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        try:
            session = stripe.billing_portal.Session.create(
                api_key=self._api_key,
                customer=customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as exc:
            raise self._upstream("billing_portal.Session.create", exc, customer_id=customer_id)

        logger.info("Created billing portal session %s for customer %s", session.id, customer_id)
        return session.url

    @staticmethod
    def _upstream(operation: str, exc: "stripe.StripeError", **context: Any) -> UpstreamError:
        message = getattr(exc, "user_message", None) or str(exc)
        logger.error("Stripe %s failed: %s", operation, exc)
        return UpstreamError(
            "BIL-UPS-001",
            detail=message,
            context={"operation": operation, **context},
        )
