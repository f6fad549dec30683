"""
Bearer Token Authentication
===========================

Resolves ``Authorization: Bearer <access token>`` to the caller's identity
by asking the authentication provider (GoTrue-compatible
``GET {auth_url}/auth/v1/user``). Validated identities are cached for
``BILLING_AUTH_CACHE_TTL`` seconds.
"""

import logging
from typing import Optional

import httpx
from cachetools import TTLCache
from fastapi import Request

from app.config import settings
from app.core.errors import AuthenticationError, ConfigurationError, UpstreamError
from app.models.billing import CallerIdentity

logger = logging.getLogger(__name__)

# In-memory cache for validated access tokens
identity_cache: TTLCache = TTLCache(maxsize=1000, ttl=settings.auth_cache_ttl)

_http_client: Optional[httpx.AsyncClient] = None


def _get_http_client() -> httpx.AsyncClient:
    """Return shared httpx.AsyncClient, creating on first use."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, connect=5.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    parts = header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def _fetch_identity(token: str) -> CallerIdentity:
    """Ask the auth provider who owns *token*."""
    if not settings.auth_url:
        raise ConfigurationError(
            "BIL-CFG-001",
            detail="Missing required configuration: BILLING_AUTH_URL",
            context={"missing": ["auth_url"]},
        )

    headers = {"Authorization": f"Bearer {token}"}
    if settings.auth_api_key:
        headers["apikey"] = settings.auth_api_key

    url = f"{settings.auth_url.rstrip('/')}/auth/v1/user"
    try:
        response = await _get_http_client().get(url, headers=headers)
    except httpx.RequestError as exc:
        logger.error("HTTP request to auth provider failed: %s", exc)
        raise UpstreamError("BIL-UPS-002", detail=str(exc))

    if response.status_code in (401, 403):
        raise AuthenticationError(
            "BIL-AUTH-002", detail="Authentication failed: invalid or expired token"
        )
    if response.status_code != 200:
        logger.error(
            "Auth provider returned status %s. Response: %s",
            response.status_code, response.text[:200],
        )
        raise UpstreamError("BIL-UPS-002", detail=f"auth provider returned {response.status_code}")

    try:
        data = response.json()
    except ValueError:
        logger.error("Auth provider returned non-JSON body: %s", response.text[:200])
        raise UpstreamError("BIL-UPS-002", detail="auth provider returned a malformed response")
    if not isinstance(data, dict):
        raise UpstreamError("BIL-UPS-002", detail="auth provider returned a malformed response")

    user_id = data.get("id")
    if not user_id:
        raise AuthenticationError("BIL-AUTH-002", detail="No user found")

    return CallerIdentity(user_id=str(user_id), email=data.get("email"), access_token=token)


async def authenticate(request: Request) -> CallerIdentity:
    """Return the verified caller identity or raise AuthenticationError."""
    token = _bearer_token(request)
    if not token:
        raise AuthenticationError("BIL-AUTH-001", detail="Authorization header is missing")

    cached = identity_cache.get(token)
    if cached:
        return cached

    identity = await _fetch_identity(token)
    identity_cache[token] = identity
    logger.info("Authenticated user %s", identity.user_id)
    return identity
