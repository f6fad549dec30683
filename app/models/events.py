"""
Billing Events
==============

Closed set of Stripe notifications the reconciler understands, plus an
explicit ``UnrecognizedEvent`` for everything else. Produced only by
``app.services.event_decoder``; nothing downstream sees the raw payload.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class EventKind(str, Enum):
    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_provider(cls, raw_kind: Optional[str]) -> "EventKind":
        for kind in cls:
            if kind is not cls.UNRECOGNIZED and kind.value == raw_kind:
                return kind
        return cls.UNRECOGNIZED


@dataclass(frozen=True)
class CheckoutCompleted:
    event_id: str
    customer_id: Optional[str]
    created: Optional[datetime] = None
    kind: EventKind = EventKind.CHECKOUT_COMPLETED


@dataclass(frozen=True)
class SubscriptionChanged:
    """customer.subscription.created / customer.subscription.updated."""
    kind: EventKind
    event_id: str
    customer_id: Optional[str]
    status: Optional[str]
    created: Optional[datetime] = None


@dataclass(frozen=True)
class SubscriptionDeleted:
    event_id: str
    customer_id: Optional[str]
    created: Optional[datetime] = None
    kind: EventKind = EventKind.SUBSCRIPTION_DELETED


@dataclass(frozen=True)
class UnrecognizedEvent:
    event_id: str
    raw_kind: str
    created: Optional[datetime] = None
    kind: EventKind = EventKind.UNRECOGNIZED
    customer_id: Optional[str] = None


BillingEvent = Union[CheckoutCompleted, SubscriptionChanged, SubscriptionDeleted, UnrecognizedEvent]
