"""
Account Resolver
================

Maps an authenticated user id (session issuance) or a Stripe customer id
(webhook processing) to exactly one Account.

Customer linkage is split into two steps so a failure between them is
recoverable by re-running only the missing half:

    1. obtain-or-create the Stripe customer (idempotent per user id)
    2. persist the linkage in a single write

Step 2 must succeed before any checkout session is created, otherwise the
webhooks for that checkout could not be attributed to an account.
"""

import logging
from typing import Optional

from app.core.errors import ResolutionError
from app.models.account import Account
from app.models.billing import CallerIdentity
from app.services.account_store import AccountStore
from app.services.payment_provider import PaymentProvider

logger = logging.getLogger(__name__)


class AccountResolver:

    def __init__(self, store: AccountStore, provider: Optional[PaymentProvider] = None):
        self._store = store
        self._provider = provider

    def for_session(self, user_id: str) -> Account:
        """Account for an authenticated caller; raises ResolutionError if missing."""
        account = self._store.get(user_id)
        if account is None:
            raise ResolutionError(
                "BIL-RES-001", detail="No profile found", context={"user_id": user_id}
            )
        return account

    def for_customer(self, customer_id: str) -> Account:
        """Account owning *customer_id*; raises ResolutionError if none does."""
        account = self._store.get_by_customer(customer_id)
        if account is None:
            raise ResolutionError(
                "BIL-RES-002",
                detail=f"No profile found with stripe_customer_id: {customer_id}",
                context={"customer_id": customer_id},
            )
        return account

    def ensure_customer(self, account: Account, identity: Optional[CallerIdentity] = None) -> str:
        """Return the account's Stripe customer id, creating and linking one if absent."""
        if account.stripe_customer_id:
            return account.stripe_customer_id
        if self._provider is None:
            raise RuntimeError("AccountResolver needs a PaymentProvider to create customers")

        email = (identity.email if identity else None) or account.email
        logger.info("Creating new Stripe customer for user %s", account.user_id)
        customer_id = self._provider.create_customer(
            user_id=account.user_id, email=email, name=account.name
        )

        self._store.attach_customer(account.user_id, customer_id)
        return customer_id
