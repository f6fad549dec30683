"""
Billing API Models
==================

Request/response shapes for the checkout/portal session endpoint, and the
ephemeral session request the issuer works from.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionFlow(str, Enum):
    NEW_SUBSCRIPTION = "new-subscription"
    MANAGE_EXISTING = "manage-existing"


@dataclass(frozen=True)
class CallerIdentity:
    """Verified identity of the caller, as reported by the auth provider."""
    user_id: str
    email: Optional[str] = None
    access_token: str = ""


@dataclass(frozen=True)
class SessionRequest:
    """Ephemeral: who is asking, which flow, and where to send them back."""
    identity: CallerIdentity
    flow: SessionFlow
    origin: str


@dataclass(frozen=True)
class SessionResult:
    url: str
    flow: SessionFlow


class SessionResponse(BaseModel):
    url: str = Field(..., description="Provider-hosted checkout or billing portal URL")


class WebhookAck(BaseModel):
    received: bool = True
