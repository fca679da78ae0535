"""
Paywall DTOs: AccessContext (input of decide_access) and AccessDecision.
"""
from __future__ import annotations

import enum

from pydantic import BaseModel, Field


class ContentView(str, enum.Enum):
    LIST = "LIST"
    DETAIL = "DETAIL"


class ContentType(str, enum.Enum):
    PREDICTION = "prediction"
    COUPON = "coupon"


class AccessOutcome(str, enum.Enum):
    ALLOW = "ALLOW"
    ALLOW_REDACTED = "ALLOW_REDACTED"
    DENY = "DENY"


# ----- Input of decide_access (one contract instead of growing signatures) -----


class AccessContext(BaseModel):
    """Requester role (None = anonymous), item flag and view kind."""

    requester_role: str | None = None
    item_is_premium: bool = False
    view: ContentView = ContentView.LIST
    content_type: ContentType = ContentType.PREDICTION

    model_config = {"frozen": True}


# ----- Access decision (pure logic, no I/O) -----


class AccessDecision(BaseModel):
    outcome: AccessOutcome
    redact_fields: tuple[str, ...] = Field(
        default=(),
        description="Fields to null on ALLOW_REDACTED; dotted paths reach into nested lists",
    )

    model_config = {"frozen": True}

    @property
    def allowed(self) -> bool:
        return self.outcome != AccessOutcome.DENY
