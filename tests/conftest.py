"""
Pytest configuration for the billing service tests.
Points the service at a temp SQLite database and test Stripe settings.
"""

import hashlib
import hmac
import json
import os
import tempfile
import time
import uuid

# Must be set before any app imports
_test_data_dir = tempfile.mkdtemp(prefix="billing_test_")
os.environ.setdefault("BILLING_DATA_DIRECTORY", _test_data_dir)
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_test_data_dir}/test.db")
os.environ["BILLING_STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["BILLING_STRIPE_PRICE_ID"] = "price_test_premium"
os.environ["BILLING_STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["BILLING_AUTH_URL"] = "https://auth.example.test"

import pytest
from sqlalchemy import delete
from sqlmodel import SQLModel

from app.core.database import get_engine
from app.models.account import Account

SQLModel.metadata.create_all(get_engine())

# Load error registry so BillingError returns correct HTTP status codes
from app.core.errors.registry import error_registry
error_registry.load()

from app.config import BillingConfig
from app.services.account_store import AccountStore

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(autouse=True)
def _clean_accounts():
    """Every test starts with an empty accounts table."""
    with get_engine().begin() as conn:
        conn.execute(delete(Account))
    yield


@pytest.fixture
def config():
    return BillingConfig.from_settings()


@pytest.fixture
def store():
    return AccountStore()


@pytest.fixture
def make_event():
    """Build a Stripe event payload dict."""

    def _make(event_type, customer="cus_1", status=None, created=None, event_id=None):
        obj = {"id": "obj_" + uuid.uuid4().hex[:8], "customer": customer}
        if status is not None:
            obj["status"] = status
        return {
            "id": event_id or "evt_" + uuid.uuid4().hex[:12],
            "object": "event",
            "type": event_type,
            "created": int(time.time()) if created is None else created,
            "data": {"object": obj},
        }

    return _make


@pytest.fixture
def sign():
    """Produce a Stripe-Signature header value for a raw body."""

    def _sign(body: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
        ts = int(time.time()) if timestamp is None else timestamp
        mac = hmac.new(secret.encode(), f"{ts}.".encode() + body, hashlib.sha256).hexdigest()
        return f"t={ts},v1={mac}"

    return _sign


@pytest.fixture
def signed_delivery(sign):
    """Serialize an event payload and sign it: returns (body, signature)."""

    def _signed(payload: dict, **kwargs):
        body = json.dumps(payload).encode()
        return body, sign(body, **kwargs)

    return _signed
