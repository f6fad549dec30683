"""
Subscription State Reconciler Tests
===================================

Coverage:
  - Transition table (every recognized kind × representative statuses)
  - Apply step against the account store (plan + quota + timestamps)
  - Idempotent replay, unrecognized events, missing customers
  - Unknown customer ids leave every row untouched
  - Out-of-order deliveries with and without the ordering guard
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from app.config import DEFAULT_FREE_TASKS_LIMIT, DEFAULT_PREMIUM_TASKS_LIMIT
from app.models.account import Plan
from app.models.events import (
    CheckoutCompleted,
    EventKind,
    SubscriptionChanged,
    SubscriptionDeleted,
    UnrecognizedEvent,
)
from app.services.account_resolver import AccountResolver
from app.services.reconciler import ReconcileOutcome, Reconciler, target_plan

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _changed(kind, status, customer="cus_1", created=T0, event_id="evt_1"):
    return SubscriptionChanged(kind=kind, event_id=event_id, customer_id=customer, status=status, created=created)


@pytest.fixture
def reconciler(config, store):
    return Reconciler(config, store, AccountResolver(store))


# ---------------------------------------------------------------------------
# target_plan()
# ---------------------------------------------------------------------------

class TestTransitionTable:
    def test_checkout_completed_is_premium(self):
        assert target_plan(CheckoutCompleted(event_id="e", customer_id="cus_1")) is Plan.PREMIUM

    @pytest.mark.parametrize("kind", [EventKind.SUBSCRIPTION_CREATED, EventKind.SUBSCRIPTION_UPDATED])
    @pytest.mark.parametrize("status", ["active", "trialing"])
    def test_active_statuses_are_premium(self, kind, status):
        assert target_plan(_changed(kind, status)) is Plan.PREMIUM

    @pytest.mark.parametrize("kind", [EventKind.SUBSCRIPTION_CREATED, EventKind.SUBSCRIPTION_UPDATED])
    @pytest.mark.parametrize(
        "status",
        ["incomplete", "incomplete_expired", "past_due", "canceled", "unpaid", "paused", "ACTIVE", None],
    )
    def test_other_statuses_are_free(self, kind, status):
        assert target_plan(_changed(kind, status)) is Plan.FREE

    def test_subscription_deleted_is_free(self):
        assert target_plan(SubscriptionDeleted(event_id="e", customer_id="cus_1")) is Plan.FREE

    def test_unrecognized_has_no_transition(self):
        assert target_plan(UnrecognizedEvent(event_id="e", raw_kind="invoice.paid")) is None


# ---------------------------------------------------------------------------
# apply()
# ---------------------------------------------------------------------------

class TestApply:
    def test_checkout_upgrades_free_account(self, reconciler, store):
        store.create("user_a", plan=Plan.FREE, stripe_customer_id="cus_1")

        result = reconciler.apply(CheckoutCompleted(event_id="evt_1", customer_id="cus_1", created=T0))

        assert result.outcome is ReconcileOutcome.APPLIED
        account = store.get("user_a")
        assert account.subscription_plan == "premium"
        assert account.tasks_limit == DEFAULT_PREMIUM_TASKS_LIMIT

    def test_past_due_downgrades_premium_account(self, reconciler, store):
        store.create("user_b", plan=Plan.PREMIUM, stripe_customer_id="cus_2")
        before = store.get("user_b").updated_at

        result = reconciler.apply(_changed(EventKind.SUBSCRIPTION_UPDATED, "past_due", customer="cus_2"))

        assert result.outcome is ReconcileOutcome.APPLIED
        assert result.plan is Plan.FREE
        account = store.get("user_b")
        assert account.subscription_plan == "free"
        assert account.tasks_limit == DEFAULT_FREE_TASKS_LIMIT
        assert account.updated_at >= before

    def test_deleted_downgrades(self, reconciler, store):
        store.create("user_c", plan=Plan.PREMIUM, stripe_customer_id="cus_3")
        reconciler.apply(SubscriptionDeleted(event_id="evt_d", customer_id="cus_3", created=T0))
        assert store.get("user_c").subscription_plan == "free"

    def test_replaying_an_update_is_idempotent(self, reconciler, store):
        store.create("user_d", plan=Plan.FREE, stripe_customer_id="cus_4")
        event = _changed(EventKind.SUBSCRIPTION_UPDATED, "active", customer="cus_4")

        first = reconciler.apply(event)
        after_once = store.get("user_d")
        second = reconciler.apply(event)
        after_twice = store.get("user_d")

        assert first.outcome is ReconcileOutcome.APPLIED
        assert second.outcome is ReconcileOutcome.APPLIED
        assert (after_once.subscription_plan, after_once.tasks_limit) == (
            after_twice.subscription_plan,
            after_twice.tasks_limit,
        )
        assert after_twice.subscription_plan == "premium"

    def test_unrecognized_never_mutates(self, reconciler, store):
        store.create("user_e", plan=Plan.FREE, stripe_customer_id="cus_5")
        before = store.get("user_e")

        result = reconciler.apply(UnrecognizedEvent(event_id="evt_u", raw_kind="invoice.paid", created=T0))

        assert result.outcome is ReconcileOutcome.IGNORED
        after = store.get("user_e")
        assert after.subscription_plan == before.subscription_plan
        assert after.updated_at == before.updated_at
        assert after.last_event_at is None

    def test_missing_customer_is_ignored(self, reconciler, store):
        store.create("user_f", plan=Plan.FREE, stripe_customer_id="cus_6")
        result = reconciler.apply(CheckoutCompleted(event_id="evt_n", customer_id=None, created=T0))
        assert result.outcome is ReconcileOutcome.IGNORED
        assert store.get("user_f").subscription_plan == "free"

    def test_unknown_customer_is_unresolved(self, reconciler, store):
        store.create("user_g", plan=Plan.FREE, stripe_customer_id="cus_7")
        store.create("user_h", plan=Plan.PREMIUM, stripe_customer_id="cus_8")

        result = reconciler.apply(CheckoutCompleted(event_id="evt_x", customer_id="cus_missing", created=T0))

        assert result.outcome is ReconcileOutcome.UNRESOLVED
        assert store.get("user_g").subscription_plan == "free"
        assert store.get("user_h").subscription_plan == "premium"

    def test_custom_quotas_follow_config(self, config, store):
        custom = replace(config, free_tasks_limit=5, premium_tasks_limit=50)
        reconciler = Reconciler(custom, store, AccountResolver(store))
        store.create("user_i", plan=Plan.FREE, stripe_customer_id="cus_9")

        reconciler.apply(CheckoutCompleted(event_id="evt_q", customer_id="cus_9", created=T0))

        assert store.get("user_i").tasks_limit == 50


class TestOrdering:
    def test_older_event_is_stale(self, reconciler, store):
        store.create("user_o", plan=Plan.PREMIUM, stripe_customer_id="cus_o")

        deleted = SubscriptionDeleted(event_id="evt_late", customer_id="cus_o", created=T0 + timedelta(minutes=5))
        earlier_update = _changed(EventKind.SUBSCRIPTION_UPDATED, "active", customer="cus_o", created=T0)

        assert reconciler.apply(deleted).outcome is ReconcileOutcome.APPLIED
        assert reconciler.apply(earlier_update).outcome is ReconcileOutcome.STALE
        assert store.get("user_o").subscription_plan == "free"

    def test_same_timestamp_still_applies(self, reconciler, store):
        store.create("user_p", plan=Plan.FREE, stripe_customer_id="cus_p")
        reconciler.apply(_changed(EventKind.SUBSCRIPTION_CREATED, "incomplete", customer="cus_p", created=T0))
        result = reconciler.apply(_changed(EventKind.SUBSCRIPTION_UPDATED, "active", customer="cus_p", created=T0))
        assert result.outcome is ReconcileOutcome.APPLIED
        assert store.get("user_p").subscription_plan == "premium"

    def test_guard_disabled_is_last_write_wins(self, config, store):
        reconciler = Reconciler(replace(config, enforce_event_ordering=False), store, AccountResolver(store))
        store.create("user_q", plan=Plan.PREMIUM, stripe_customer_id="cus_q")

        reconciler.apply(SubscriptionDeleted(event_id="evt_1", customer_id="cus_q", created=T0 + timedelta(minutes=5)))
        result = reconciler.apply(_changed(EventKind.SUBSCRIPTION_UPDATED, "active", customer="cus_q", created=T0))

        assert result.outcome is ReconcileOutcome.APPLIED
        assert store.get("user_q").subscription_plan == "premium"

    def test_event_without_timestamp_always_applies(self, reconciler, store):
        store.create("user_r", plan=Plan.FREE, stripe_customer_id="cus_r")
        reconciler.apply(CheckoutCompleted(event_id="evt_1", customer_id="cus_r", created=T0))
        result = reconciler.apply(SubscriptionDeleted(event_id="evt_2", customer_id="cus_r", created=None))
        assert result.outcome is ReconcileOutcome.APPLIED
        assert store.get("user_r").subscription_plan == "free"
