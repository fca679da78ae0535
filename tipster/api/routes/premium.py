"""
Admin premium dashboard: counts, revenue, expiring users, manual sweep.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tipster.db.session import get_db
from tipster.services.entitlements.service import EntitlementService
from tipster.services.payments.service import PaymentService
from tipster.services.auth.jwt import require_admin
from tipster.utils.metrics import premium_downgrades_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/premium", tags=["admin-premium"], dependencies=[Depends(require_admin)])


@router.get("/stats")
def premium_stats(db: Session = Depends(get_db)):
    stats = EntitlementService(db).premium_counts()
    stats.update(PaymentService(db).payment_counts())
    return stats


@router.get("/expiring")
def expiring_users(days: int = Query(7, ge=1, le=365), db: Session = Depends(get_db)):
    users = EntitlementService(db).list_expiring_within(days)
    return {
        "days": days,
        "count": len(users),
        "users": [u.model_dump(mode="json") for u in users],
    }


@router.post("/sweep")
def run_sweep(db: Session = Depends(get_db)):
    """Same downgrade pass as the nightly schedule; safe to run any time."""
    result = EntitlementService(db).sweep_expired()
    if result.count:
        premium_downgrades_total.labels(trigger="sweep").inc(result.count)
    logger.info("premium_sweep_done", extra={"count": result.count, "trigger": "manual"})
    return result.model_dump()
