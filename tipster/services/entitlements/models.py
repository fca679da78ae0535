"""
DTOs returned by EntitlementService.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ReconcileResult(BaseModel):
    """Outcome of reconcile_if_expired: fresh role/expiry as stored after the call."""

    downgraded: bool
    role: str
    premium_until: datetime | None = None

    model_config = {"frozen": True}


class SweepResult(BaseModel):
    count: int = 0
    affected_user_ids: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ExpiringUser(BaseModel):
    """Premium user whose entitlement ends inside a warning window."""

    user_id: str
    email: str
    admin_username: str | None = None
    premium_until: datetime

    model_config = {"frozen": True}
