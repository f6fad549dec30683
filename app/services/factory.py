"""
Wiring for the billing components.

Each request gets components built from a fresh ``BillingConfig``
snapshot; construction is where missing configuration is detected. The
account store is stateless and shared.
"""

from fastapi import Depends

from app.config import BillingConfig
from app.services.account_resolver import AccountResolver
from app.services.account_store import AccountStore
from app.services.payment_provider import PaymentProvider
from app.services.reconciler import Reconciler
from app.services.session_issuer import SessionIssuer
from app.services.signature_verifier import SignatureVerifier
from app.services.webhook_processor import WebhookProcessor

_account_store = AccountStore()


def get_billing_config() -> BillingConfig:
    return BillingConfig.from_settings()


def get_account_store() -> AccountStore:
    return _account_store


def build_webhook_processor(config: BillingConfig, store: AccountStore) -> WebhookProcessor:
    resolver = AccountResolver(store)
    return WebhookProcessor(
        verifier=SignatureVerifier(config),
        reconciler=Reconciler(config, store, resolver),
    )


def build_session_issuer(config: BillingConfig, store: AccountStore) -> SessionIssuer:
    # Check every required field up front so the error names all of them
    config.require("stripe_secret_key", "stripe_price_id")
    provider = PaymentProvider(config)
    return SessionIssuer(config, AccountResolver(store, provider), provider)


def get_webhook_processor(
    config: BillingConfig = Depends(get_billing_config),
    store: AccountStore = Depends(get_account_store),
) -> WebhookProcessor:
    """FastAPI dependency for the webhook endpoint."""
    return build_webhook_processor(config, store)
