"""
Stripe Webhook Router
=====================

POST /api/webhooks/stripe

The raw body is read untouched and handed to the processor together with
the ``Stripe-Signature`` header. Responses:

    200 {"received": true}   processed, including deliberate no-ops
    400 {"error": ...}       missing or invalid signature
    500 {"error": ...}       webhook secret unset, or account write failed
"""

import logging

from fastapi import APIRouter, Depends, Request

from app.models.billing import WebhookAck
from app.services.factory import get_webhook_processor
from app.services.webhook_processor import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/stripe",
    response_model=WebhookAck,
    summary="Stripe Webhook",
    description="Receive subscription and checkout events from Stripe.",
)
async def stripe_webhook(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")
    await processor.handle(payload, signature)
    return WebhookAck(received=True)
