"""
Subscription State Reconciler
=============================

Computes the target plan for a billing event and writes it, with the
matching quota, to the account that owns the event's customer.

The plan is always a pure function of the event (and, for subscription
events, the subscription status it reports), never an increment of the
current state:

    checkout.session.completed                        -> premium
    customer.subscription.created/updated  active     -> premium
    customer.subscription.created/updated  trialing   -> premium
    customer.subscription.created/updated  other      -> free
    customer.subscription.deleted                     -> free
    anything else                                     -> no transition

so replays converge on the same state. Deliveries older than the last
applied event are dropped when ``enforce_event_ordering`` is on.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.config import BillingConfig
from app.core.errors import ResolutionError
from app.models.account import Plan, quota_for_plan
from app.models.events import (
    BillingEvent,
    CheckoutCompleted,
    SubscriptionChanged,
    SubscriptionDeleted,
)
from app.services.account_resolver import AccountResolver
from app.services.account_store import AccountStore

logger = logging.getLogger(__name__)

PREMIUM_STATUSES = frozenset({"active", "trialing"})


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    UNRESOLVED = "unresolved"
    STALE = "stale"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    plan: Optional[Plan] = None
    tasks_limit: Optional[int] = None


def target_plan(event: BillingEvent) -> Optional[Plan]:
    """Plan an account should hold after *event*, or None for no transition."""
    if isinstance(event, CheckoutCompleted):
        return Plan.PREMIUM
    if isinstance(event, SubscriptionChanged):
        return Plan.PREMIUM if event.status in PREMIUM_STATUSES else Plan.FREE
    if isinstance(event, SubscriptionDeleted):
        return Plan.FREE
    return None


class Reconciler:

    def __init__(self, config: BillingConfig, store: AccountStore, resolver: AccountResolver):
        self._config = config
        self._store = store
        self._resolver = resolver

    def quota(self, plan: Plan) -> int:
        return quota_for_plan(
            plan,
            free_limit=self._config.free_tasks_limit,
            premium_limit=self._config.premium_tasks_limit,
        )

    def apply(self, event: BillingEvent) -> ReconcileResult:
        plan = target_plan(event)
        if plan is None:
            logger.info("Unhandled event type: %s", getattr(event, "raw_kind", event.kind.value))
            return ReconcileResult(ReconcileOutcome.IGNORED)

        if not event.customer_id:
            logger.error("No customer ID in %s event %s", event.kind.value, event.event_id)
            return ReconcileResult(ReconcileOutcome.IGNORED)

        tasks_limit = self.quota(plan)
        rows = self._store.apply_plan(
            event.customer_id,
            plan,
            tasks_limit,
            event_at=event.created,
            enforce_ordering=self._config.enforce_event_ordering,
        )
        if rows:
            logger.info(
                "Updated profile to %s: customer=%s event=%s tasks_limit=%d",
                plan.value, event.customer_id, event.event_id, tasks_limit,
            )
            return ReconcileResult(ReconcileOutcome.APPLIED, plan, tasks_limit)

        # Zero rows: either nobody owns this customer, or the event is older
        # than what the account already reflects.
        try:
            account = self._resolver.for_customer(event.customer_id)
        except ResolutionError as exc:
            logger.error(
                "%s", exc.detail,
                extra={"error.code": exc.code, "event_id": event.event_id, "event_type": event.kind.value},
            )
            return ReconcileResult(ReconcileOutcome.UNRESOLVED)

        logger.warning(
            "Skipping stale %s event %s for customer %s (event at %s, last applied %s)",
            event.kind.value, event.event_id, event.customer_id,
            event.created, account.last_event_at,
        )
        return ReconcileResult(ReconcileOutcome.STALE)
