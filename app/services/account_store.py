"""
Account Store
=============

SQL access to the ``accounts`` table. Every plan write is a single
``UPDATE ... WHERE stripe_customer_id = ?`` statement so concurrent
deliveries for the same customer rely on row-level atomicity rather than
in-process locks.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from app.core.database import get_engine, get_session_context, sqlite_retry
from app.core.errors import PersistenceError
from app.models.account import Account, Plan, quota_for_plan

logger = logging.getLogger(__name__)


class AccountStore:
    """Read-one / update-one access to accounts by user id or customer id."""

    def get(self, user_id: str) -> Optional[Account]:
        def _run() -> Optional[Account]:
            with get_session_context() as session:
                return session.get(Account, user_id)

        return self._read(_run, context={"user_id": user_id})

    def get_by_customer(self, customer_id: str) -> Optional[Account]:
        def _run() -> Optional[Account]:
            with get_session_context() as session:
                stmt = select(Account).where(Account.stripe_customer_id == customer_id)
                return session.exec(stmt).first()

        return self._read(_run, context={"customer_id": customer_id})

    def create(
        self,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        plan: Plan = Plan.FREE,
        stripe_customer_id: Optional[str] = None,
    ) -> Account:
        """Insert an account row (signup hook and test seeding)."""
        account = Account(
            user_id=user_id,
            email=email,
            name=name,
            stripe_customer_id=stripe_customer_id,
            subscription_plan=Plan(plan).value,
            tasks_limit=quota_for_plan(plan),
        )
        with get_session_context() as session:
            session.add(account)
            session.commit()
            session.refresh(account)
        logger.info("Account created: user=%s plan=%s", user_id, account.subscription_plan)
        return account

    def attach_customer(self, user_id: str, customer_id: str) -> None:
        """Persist the Stripe customer linkage for *user_id*.

        Re-attaching the same id is a no-op success. Raises PersistenceError
        if the row is gone, already linked to another customer, or the write
        fails.
        """
        stmt = (
            update(Account)
            .where(Account.user_id == user_id)
            .where(or_(Account.stripe_customer_id.is_(None), Account.stripe_customer_id == customer_id))
            .values(stripe_customer_id=customer_id, updated_at=datetime.now(timezone.utc))
        )
        rows = self._execute(stmt, code="BIL-DB-002", context={"user_id": user_id})
        if rows == 0:
            raise PersistenceError(
                "BIL-DB-002",
                detail=f"Could not link customer {customer_id} to account {user_id}",
                context={"user_id": user_id, "customer_id": customer_id},
            )
        logger.info("Linked Stripe customer %s to user %s", customer_id, user_id)

    def apply_plan(
        self,
        customer_id: str,
        plan: Plan,
        tasks_limit: int,
        event_at: Optional[datetime] = None,
        enforce_ordering: bool = True,
    ) -> int:
        """Write plan + quota for the account owning *customer_id*.

        With ``enforce_ordering`` the write only lands when *event_at* is not
        older than the last applied event. Returns the number of rows updated.
        """
        values = {
            "subscription_plan": Plan(plan).value,
            "tasks_limit": tasks_limit,
            "updated_at": datetime.now(timezone.utc),
        }
        stmt = update(Account).where(Account.stripe_customer_id == customer_id)
        if event_at is not None:
            if event_at.tzinfo is not None:
                event_at = event_at.astimezone(timezone.utc)
            values["last_event_at"] = event_at
            if enforce_ordering:
                stmt = stmt.where(
                    or_(Account.last_event_at.is_(None), Account.last_event_at <= event_at)
                )
        return self._execute(
            stmt.values(**values), code="BIL-DB-001", context={"customer_id": customer_id}
        )

    def _read(self, fn, context: dict) -> Optional[Account]:
        try:
            return sqlite_retry(fn)
        except SQLAlchemyError as exc:
            logger.error("Account read failed: %s", exc)
            raise PersistenceError("BIL-DB-003", detail=str(exc), context=context) from exc

    def _execute(self, stmt, code: str, context: dict) -> int:
        def _run() -> int:
            with get_engine().begin() as conn:
                return conn.execute(stmt).rowcount

        try:
            return sqlite_retry(_run)
        except SQLAlchemyError as exc:
            logger.error("Account write failed (%s): %s", code, exc)
            raise PersistenceError(code, detail=str(exc), context=context) from exc
