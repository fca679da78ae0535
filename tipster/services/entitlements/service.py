"""
EntitlementService: the only writer of User.role / User.premium_until.

Responsibilities:
- Conditional downgrade of a lapsed premium user (request hook and sweep share it)
- Extension of premium time (payment approval, admin override)
- Revocation (admin)
- Read-only queries for warning passes and stats

reconcile_if_expired / extend_premium / revoke only flush: the caller's
unit_of_work decides the commit. sweep_expired commits per user.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from tipster.core.errors import ConflictError, NotFoundError, ValidationError
from tipster.db.session import unit_of_work
from tipster.models.user import User, UserRole
from tipster.services.entitlements import clock
from tipster.services.entitlements.models import ExpiringUser, ReconcileResult, SweepResult

logger = logging.getLogger(__name__)

EXPIRING_SOON_DAYS = 7


def _lapsed_filter(now: datetime):
    return (
        User.role == UserRole.PREMIUM.value,
        or_(User.premium_until.is_(None), User.premium_until < now),
    )


class EntitlementService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reconcile_if_expired(self, user_id: str, now: datetime | None = None) -> ReconcileResult:
        """
        Downgrade the user to NORMAL if their premium has lapsed.
        The UPDATE is conditioned on the stored state, so concurrent callers
        cannot both report a downgrade.
        """
        now = now or clock.utcnow()
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", user_id=user_id)
        downgraded = self._downgrade_if_lapsed(user_id, now)
        self.db.refresh(user)
        if downgraded:
            logger.info(
                "premium_downgraded",
                extra={"user_id": user_id, "trigger": "request"},
            )
        return ReconcileResult(downgraded=downgraded, role=user.role, premium_until=user.premium_until)

    def extend_premium(self, user_id: str, days: int, now: datetime | None = None) -> User:
        """Grant `days` of premium on top of any unexpired remaining time."""
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("days must be a positive integer", days=days)
        now = now or clock.utcnow()
        user = self._lock_user(user_id)
        if user.role == UserRole.ADMIN.value:
            raise ConflictError("Admin accounts are not time-bounded", user_id=user_id)
        new_expiry = clock.extend(user.premium_until, days, now)
        user.role = UserRole.PREMIUM.value
        user.premium_until = new_expiry
        user.updated_at = now
        self.db.add(user)
        self.db.flush()
        logger.info(
            "premium_extended",
            extra={"user_id": user_id, "days": days, "premium_until": new_expiry.isoformat()},
        )
        return user

    def revoke(self, user_id: str, now: datetime | None = None) -> User:
        now = now or clock.utcnow()
        user = self._lock_user(user_id)
        if user.role == UserRole.ADMIN.value:
            raise ConflictError("Admin role is not managed by premium revocation", user_id=user_id)
        user.role = UserRole.NORMAL.value
        user.premium_until = None
        user.updated_at = now
        self.db.add(user)
        self.db.flush()
        logger.info("premium_revoked", extra={"user_id": user_id, "trigger": "revoke"})
        return user

    def sweep_expired(self, now: datetime | None = None) -> SweepResult:
        """
        Downgrade every lapsed premium user. Each downgrade is its own
        transaction: an interrupted sweep keeps what it committed and the
        next run picks up the rest. Running it twice yields count=0 the second time.
        """
        now = now or clock.utcnow()
        candidate_ids = [
            row[0]
            for row in self.db.query(User.id).filter(*_lapsed_filter(now)).order_by(User.id).all()
        ]
        affected: list[str] = []
        for user_id in candidate_ids:
            with unit_of_work(self.db):
                changed = self._downgrade_if_lapsed(user_id, now)
            if changed:
                affected.append(user_id)
                logger.info("premium_downgraded", extra={"user_id": user_id, "trigger": "sweep"})
        return SweepResult(count=len(affected), affected_user_ids=affected)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def list_expiring_within(self, days_ahead: int, now: datetime | None = None) -> list[ExpiringUser]:
        """Premium users with now <= premium_until <= now + days_ahead. Does not mutate."""
        now = now or clock.utcnow()
        horizon = now + timedelta(days=days_ahead)
        rows = (
            self.db.query(User)
            .filter(
                User.role == UserRole.PREMIUM.value,
                User.premium_until >= now,
                User.premium_until <= horizon,
            )
            .order_by(User.premium_until)
            .all()
        )
        return [
            ExpiringUser(
                user_id=u.id,
                email=u.email,
                admin_username=u.admin_username,
                premium_until=clock.as_utc(u.premium_until),
            )
            for u in rows
        ]

    def premium_counts(self, now: datetime | None = None) -> dict:
        now = now or clock.utcnow()
        horizon = now + timedelta(days=EXPIRING_SOON_DAYS)
        premium = self.db.query(func.count(User.id)).filter(User.role == UserRole.PREMIUM.value)
        active = premium.filter(User.premium_until > now).scalar() or 0
        expired = self.db.query(func.count(User.id)).filter(*_lapsed_filter(now)).scalar() or 0
        expiring_soon = premium.filter(
            User.premium_until >= now, User.premium_until <= horizon
        ).scalar() or 0
        return {
            "active_premium_users": active,
            "expired_premium_users": expired,
            "expiring_soon_users": expiring_soon,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _downgrade_if_lapsed(self, user_id: str, now: datetime) -> bool:
        result = self.db.execute(
            update(User)
            .where(User.id == user_id, *_lapsed_filter(now))
            .values(role=UserRole.NORMAL.value, premium_until=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.flush()
        return result.rowcount > 0

    def _lock_user(self, user_id: str) -> User:
        user = (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if user is None:
            raise NotFoundError("User not found", user_id=user_id)
        return user
