"""
Profile of the current user and admin premium overrides.
"""
import logging

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tipster.db.session import get_db, unit_of_work
from tipster.models.user import User, UserRole
from tipster.services.audit.service import AuditService
from tipster.services.auth.jwt import get_current_user, require_admin
from tipster.services.entitlements import clock
from tipster.services.entitlements.service import EntitlementService
from tipster.utils.metrics import premium_downgrades_total, premium_extensions_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class ExtendPremiumRequest(BaseModel):
    days: int


def user_to_dict(user: User) -> dict:
    now = clock.utcnow()
    is_premium = user.role == UserRole.PREMIUM.value and not clock.is_premium_lapsed(
        user.role, user.premium_until, now
    )
    return {
        "id": user.id,
        "email": user.email,
        "admin_username": user.admin_username,
        "role": user.role,
        "is_premium": is_premium,
        "premium_until": clock.as_utc(user.premium_until).isoformat() if user.premium_until else None,
        "premium_days_left": clock.days_left(user.premium_until, now) if is_premium else 0,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return user_to_dict(user)


@router.put("/{user_id}/premium")
def extend_user_premium(
    user_id: str,
    body: ExtendPremiumRequest = Body(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin override: add `days` of premium on top of the remaining time."""
    with unit_of_work(db):
        user = EntitlementService(db).extend_premium(user_id, body.days)
        AuditService(db).log(
            actor_type="admin",
            actor_id=admin.id,
            action="premium_extended",
            entity_type="user",
            entity_id=user_id,
            payload={"days": body.days, "premium_until": user.premium_until.isoformat()},
        )
    premium_extensions_total.labels(source="admin").inc()
    return user_to_dict(user)


@router.delete("/{user_id}/premium")
def revoke_user_premium(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        user = EntitlementService(db).revoke(user_id)
        AuditService(db).log(
            actor_type="admin",
            actor_id=admin.id,
            action="premium_revoked",
            entity_type="user",
            entity_id=user_id,
        )
    premium_downgrades_total.labels(trigger="revoke").inc()
    return user_to_dict(user)
