"""
Account Model
=============

One row per end user holding the subscription plan and the task quota
derived from it. Rows are created at signup; the billing service only
attaches the Stripe customer id and mutates plan/quota.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from app.config import DEFAULT_FREE_TASKS_LIMIT, DEFAULT_PREMIUM_TASKS_LIMIT


class Plan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


def quota_for_plan(
    plan: Plan,
    free_limit: int = DEFAULT_FREE_TASKS_LIMIT,
    premium_limit: int = DEFAULT_PREMIUM_TASKS_LIMIT,
) -> int:
    """Canonical task limit for *plan*."""
    return premium_limit if Plan(plan) is Plan.PREMIUM else free_limit


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(SQLModel, table=True):
    """Subscription standing for a user."""

    __tablename__ = "accounts"

    user_id: str = Field(primary_key=True, max_length=128)
    email: Optional[str] = Field(default=None, nullable=True, max_length=320)
    name: Optional[str] = Field(default=None, nullable=True, max_length=255)
    stripe_customer_id: Optional[str] = Field(
        default=None, nullable=True, unique=True, index=True, max_length=255
    )
    subscription_plan: str = Field(default=Plan.FREE.value, max_length=32)
    tasks_limit: int = Field(default=DEFAULT_FREE_TASKS_LIMIT)
    # Provider-side creation time of the last billing event applied to this row
    last_event_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    @property
    def plan(self) -> Plan:
        return Plan(self.subscription_plan)

    @property
    def is_premium(self) -> bool:
        return self.plan is Plan.PREMIUM
