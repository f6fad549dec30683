"""
Account Resolver Tests
======================

Lookups by user id and by Stripe customer id, and the two-step
create-then-link customer flow.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.core.errors import PersistenceError, ResolutionError, UpstreamError
from app.models.account import Plan
from app.models.billing import CallerIdentity
from app.services.account_resolver import AccountResolver
from app.services.payment_provider import PaymentProvider


@pytest.fixture
def provider():
    mock = MagicMock(spec=PaymentProvider)
    mock.create_customer.return_value = "cus_new"
    return mock


class TestLookups:
    def test_for_session_found(self, store):
        store.create("user_1", email="a@example.com")
        assert AccountResolver(store).for_session("user_1").email == "a@example.com"

    def test_for_session_missing(self, store):
        with pytest.raises(ResolutionError) as exc_info:
            AccountResolver(store).for_session("ghost")
        assert exc_info.value.code == "BIL-RES-001"
        assert exc_info.value.detail == "No profile found"

    def test_for_customer_found(self, store):
        store.create("user_2", plan=Plan.PREMIUM, stripe_customer_id="cus_2")
        account = AccountResolver(store).for_customer("cus_2")
        assert account.user_id == "user_2"
        assert account.is_premium

    def test_for_customer_missing(self, store):
        with pytest.raises(ResolutionError) as exc_info:
            AccountResolver(store).for_customer("cus_nobody")
        assert exc_info.value.code == "BIL-RES-002"
        assert "cus_nobody" in exc_info.value.detail


class TestEnsureCustomer:
    def test_existing_customer_is_reused(self, store, provider):
        account = store.create("user_3", stripe_customer_id="cus_existing")
        resolver = AccountResolver(store, provider)

        assert resolver.ensure_customer(account) == "cus_existing"
        provider.create_customer.assert_not_called()

    def test_creates_and_links_customer(self, store, provider):
        account = store.create("user_4", email="row@example.com", name="Ada")
        resolver = AccountResolver(store, provider)
        identity = CallerIdentity(user_id="user_4", email="token@example.com")

        assert resolver.ensure_customer(account, identity) == "cus_new"

        provider.create_customer.assert_called_once_with(
            user_id="user_4", email="token@example.com", name="Ada"
        )
        assert store.get("user_4").stripe_customer_id == "cus_new"
        assert resolver.for_customer("cus_new").user_id == "user_4"

    def test_falls_back_to_account_email(self, store, provider):
        account = store.create("user_5", email="row@example.com")
        AccountResolver(store, provider).ensure_customer(account, CallerIdentity(user_id="user_5"))
        assert provider.create_customer.call_args.kwargs["email"] == "row@example.com"

    def test_provider_failure_leaves_account_unlinked(self, store, provider):
        provider.create_customer.side_effect = UpstreamError("BIL-UPS-001", detail="card_error")
        account = store.create("user_6")

        with pytest.raises(UpstreamError):
            AccountResolver(store, provider).ensure_customer(account)

        assert store.get("user_6").stripe_customer_id is None

    def test_link_conflict_raises_persistence_error(self, store, provider):
        # Row was linked by a concurrent request after it was read
        stale = store.create("user_7")
        store.attach_customer("user_7", "cus_other")

        with pytest.raises(PersistenceError) as exc_info:
            AccountResolver(store, provider).ensure_customer(stale)
        assert exc_info.value.code == "BIL-DB-002"
        assert store.get("user_7").stripe_customer_id == "cus_other"

    def test_relinking_same_customer_is_noop(self, store):
        store.create("user_8")
        store.attach_customer("user_8", "cus_8")
        store.attach_customer("user_8", "cus_8")
        assert store.get("user_8").stripe_customer_id == "cus_8"

    def test_second_call_uses_linked_customer(self, store):
        calls = []

        def _create_customer(user_id, email=None, name=None):
            calls.append(user_id)
            return SimpleNamespace(id=f"cus_for_{user_id}").id

        provider = MagicMock(spec=PaymentProvider)
        provider.create_customer.side_effect = _create_customer
        account = store.create("user_9")
        resolver = AccountResolver(store, provider)

        assert resolver.ensure_customer(account) == "cus_for_user_9"
        assert resolver.ensure_customer(store.get("user_9")) == "cus_for_user_9"
        assert calls == ["user_9"]
