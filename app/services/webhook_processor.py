"""
Stripe webhook processing: verify -> decode -> reconcile.

Each delivery is handled independently. Verification failures raise
before the body is parsed; unknown event types, events without a
customer, unknown customers and stale deliveries are all acknowledged
so Stripe does not redeliver them. Persistence failures propagate so the
endpoint answers non-200 and Stripe retries.
"""

import logging
from typing import Optional

from app.core.async_utils import run_sync
from app.services.event_decoder import decode_event
from app.services.reconciler import ReconcileResult, Reconciler
from app.services.signature_verifier import SignatureVerifier

logger = logging.getLogger(__name__)


class WebhookProcessor:

    def __init__(self, verifier: SignatureVerifier, reconciler: Reconciler):
        self._verifier = verifier
        self._reconciler = reconciler

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> ReconcileResult:
        payload = self._verifier.verify(raw_body, signature)
        event = decode_event(payload)

        logger.info(
            "WEBHOOK_RECEIVED event_id=%s event_type=%s customer_id=%s",
            event.event_id, getattr(event, "raw_kind", event.kind.value), event.customer_id,
        )

        result = await run_sync(self._reconciler.apply, event)

        logger.info(
            "WEBHOOK_PROCESSED event_id=%s outcome=%s plan=%s",
            event.event_id, result.outcome.value, result.plan.value if result.plan else None,
        )
        return result
