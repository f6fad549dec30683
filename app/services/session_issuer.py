"""
Checkout / Portal Session Issuer
================================

Given an authenticated caller, returns a Stripe-hosted URL:

- premium accounts get a billing-portal session to manage their
  subscription (returns to ``<origin>/profile``);
- everyone else gets a subscription-mode checkout session for the
  configured price (``<origin>/profile?success=true`` /
  ``<origin>/profile?canceled=true``).

The Stripe customer is created and linked to the account before either
session is requested.
"""

import logging
from typing import Optional

from app.config import BillingConfig
from app.core.async_utils import run_sync
from app.models.billing import CallerIdentity, SessionFlow, SessionRequest, SessionResult
from app.services.account_resolver import AccountResolver
from app.services.payment_provider import PaymentProvider

logger = logging.getLogger(__name__)


class SessionIssuer:

    def __init__(
        self,
        config: BillingConfig,
        resolver: AccountResolver,
        provider: PaymentProvider,
    ):
        self._config = config
        self._resolver = resolver
        self._provider = provider

    async def issue(self, identity: CallerIdentity, origin: Optional[str] = None) -> SessionResult:
        logger.info("Looking up account for user %s", identity.user_id)
        account = await run_sync(self._resolver.for_session, identity.user_id)

        request = SessionRequest(
            identity=identity,
            flow=SessionFlow.MANAGE_EXISTING if account.is_premium else SessionFlow.NEW_SUBSCRIPTION,
            origin=(origin or self._config.app_base_url).rstrip("/"),
        )

        customer_id = await run_sync(self._resolver.ensure_customer, account, identity)

        if request.flow is SessionFlow.MANAGE_EXISTING:
            url = await run_sync(
                self._provider.create_portal_session,
                customer_id,
                f"{request.origin}/profile",
            )
        else:
            url = await run_sync(
                self._provider.create_checkout_session,
                customer_id,
                self._config.stripe_price_id,
                f"{request.origin}/profile?success=true",
                f"{request.origin}/profile?canceled=true",
            )

        logger.info(
            "Issued %s session for user %s (customer %s)",
            request.flow.value, identity.user_id, customer_id,
        )
        return SessionResult(url=url, flow=request.flow)
