"""
Decode a verified Stripe event payload into a typed BillingEvent.

Only the fields the reconciler needs are extracted: event id, creation
time, customer id, and (for subscription events) the subscription status.
Event types outside the recognized set decode to ``UnrecognizedEvent`` so
that new upstream types never break processing.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from app.models.events import (
    BillingEvent,
    CheckoutCompleted,
    EventKind,
    SubscriptionChanged,
    SubscriptionDeleted,
    UnrecognizedEvent,
)


def _customer_id(value: Any) -> Optional[str]:
    # ``customer`` is an id string, or an object when the event was expanded
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        cid = value.get("id")
        return cid if isinstance(cid, str) and cid else None
    return None


def _created_at(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def decode_event(payload: Mapping[str, Any]) -> BillingEvent:
    raw_kind = payload.get("type")
    raw_kind = raw_kind if isinstance(raw_kind, str) else ""
    kind = EventKind.from_provider(raw_kind)
    event_id = str(payload.get("id") or "")
    created = _created_at(payload.get("created"))

    if kind is EventKind.UNRECOGNIZED:
        return UnrecognizedEvent(event_id=event_id, raw_kind=raw_kind, created=created)

    data = payload.get("data")
    obj = data.get("object") if isinstance(data, Mapping) else None
    if not isinstance(obj, Mapping):
        obj = {}
    customer_id = _customer_id(obj.get("customer"))

    if kind is EventKind.CHECKOUT_COMPLETED:
        return CheckoutCompleted(event_id=event_id, customer_id=customer_id, created=created)

    if kind is EventKind.SUBSCRIPTION_DELETED:
        return SubscriptionDeleted(event_id=event_id, customer_id=customer_id, created=created)

    status = obj.get("status")
    return SubscriptionChanged(
        kind=kind,
        event_id=event_id,
        customer_id=customer_id,
        status=status if isinstance(status, str) else None,
        created=created,
    )
