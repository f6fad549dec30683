"""
Billing Session Router
======================

POST    /api/billing/session : checkout (free) or billing portal (premium) URL
OPTIONS /api/billing/session : CORS preflight, 204

Called directly from the browser, so every response carries permissive
CORS headers and every failure is reported as 400 ``{"error": <message>}``.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from app.auth.bearer_auth import authenticate
from app.config import BillingConfig
from app.core.errors import BillingError
from app.core.errors.middleware import error_response
from app.models.billing import SessionResponse
from app.services.account_store import AccountStore
from app.services.factory import build_session_issuer, get_account_store, get_billing_config

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

router = APIRouter()


@router.options("/billing/session", include_in_schema=False)
async def session_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


@router.post(
    "/billing/session",
    response_model=SessionResponse,
    summary="Create a checkout or billing portal session",
    description=(
        "Free accounts receive a subscription checkout URL; premium accounts "
        "receive a billing portal URL. Requires a bearer access token."
    ),
)
async def create_session(
    request: Request,
    config: BillingConfig = Depends(get_billing_config),
    store: AccountStore = Depends(get_account_store),
):
    try:
        issuer = build_session_issuer(config, store)
        identity = await authenticate(request)
        result = await issuer.issue(identity, origin=request.headers.get("origin"))
    except BillingError as exc:
        logger.error("Error in create-session: %s", exc)
        return error_response(exc, status_code=status.HTTP_400_BAD_REQUEST, headers=CORS_HEADERS)
    except Exception as exc:
        logger.exception("Unexpected error in create-session")
        return error_response(
            BillingError("BIL-SYS-001", detail=repr(exc)),
            status_code=status.HTTP_400_BAD_REQUEST,
            headers=CORS_HEADERS,
        )

    return JSONResponse(
        content=SessionResponse(url=result.url).model_dump(),
        headers=CORS_HEADERS,
    )
