"""
Celery beat tasks for the premium lifecycle:
- nightly sweep of lapsed premium users
- hourly stats snapshot (gauges + log)
- advance expiry warnings (7 days and 1 day ahead)
- weekly report

Every task swallows and logs its own failure so the scheduler keeps its cadence;
the next run retries naturally.
"""
import logging
import time

from celery.exceptions import SoftTimeLimitExceeded

from tipster.core.celery_app import celery_app
from tipster.core.config import settings
from tipster.db.session import SessionLocal
from tipster.services.entitlements import clock
from tipster.services.entitlements.service import EntitlementService
from tipster.services.notifications.sink import ExpiryWarning, get_notification_sink
from tipster.services.payments.service import PaymentService
from tipster.utils.metrics import (
    premium_active_users,
    premium_downgrades_total,
    premium_expiring_soon_users,
    premium_sweep_duration_seconds,
)

logger = logging.getLogger(__name__)


@celery_app.task(
    name="tipster.workers.tasks.premium.sweep_expired_premium",
    time_limit=settings.sweep_time_limit_seconds + 30,
    soft_time_limit=settings.sweep_time_limit_seconds,
)
def sweep_expired_premium() -> dict:
    """Downgrade every PREMIUM user whose entitlement has lapsed."""
    db = SessionLocal()
    started = time.monotonic()
    try:
        result = EntitlementService(db).sweep_expired()
        if result.count:
            premium_downgrades_total.labels(trigger="sweep").inc(result.count)
        duration = time.monotonic() - started
        premium_sweep_duration_seconds.observe(duration)
        logger.info(
            "premium_sweep_done",
            extra={"count": result.count, "duration_seconds": round(duration, 3)},
        )
        return {"ok": True, "count": result.count}
    except SoftTimeLimitExceeded:
        # Downgrades committed so far are kept; the next run continues
        db.rollback()
        logger.warning("premium_sweep_time_limit", extra={"duration_seconds": round(time.monotonic() - started, 3)})
        return {"ok": False, "error": "time_limit"}
    except Exception:
        db.rollback()
        logger.exception("premium_sweep_error")
        return {"ok": False, "error": "exception"}
    finally:
        db.close()


@celery_app.task(name="tipster.workers.tasks.premium.snapshot_premium_stats")
def snapshot_premium_stats() -> dict:
    db = SessionLocal()
    try:
        counts = EntitlementService(db).premium_counts()
        premium_active_users.set(counts["active_premium_users"])
        premium_expiring_soon_users.set(counts["expiring_soon_users"])
        logger.info("premium_stats_snapshot", extra={"count": counts["active_premium_users"]})
        return {"ok": True, **counts}
    except Exception:
        db.rollback()
        logger.exception("premium_stats_snapshot_error")
        return {"ok": False, "error": "exception"}
    finally:
        db.close()


@celery_app.task(name="tipster.workers.tasks.premium.warn_expiring_premium")
def warn_expiring_premium(days_ahead: int = 7) -> dict:
    """Read-only: push warnings for premium users expiring within days_ahead."""
    db = SessionLocal()
    try:
        now = clock.utcnow()
        expiring = EntitlementService(db).list_expiring_within(days_ahead, now=now)
        warnings = [ExpiryWarning.from_expiring(u, now) for u in expiring]
        if warnings:
            get_notification_sink().notify_expiring(warnings, days_ahead)
        return {"ok": True, "days_ahead": days_ahead, "count": len(warnings)}
    except Exception:
        db.rollback()
        logger.exception("premium_expiry_warning_error", extra={"days_ahead": days_ahead})
        return {"ok": False, "error": "exception"}
    finally:
        db.close()


@celery_app.task(name="tipster.workers.tasks.premium.weekly_premium_report")
def weekly_premium_report() -> dict:
    db = SessionLocal()
    try:
        now = clock.utcnow()
        payments = PaymentService(db)
        report = {
            **EntitlementService(db).premium_counts(now=now),
            **payments.payment_counts(),
            "daily_payments": payments.daily_counts(days=7, now=now),
        }
        logger.info("premium_weekly_report", extra={"count": report["total_payments"]})
        return {"ok": True, **report}
    except Exception:
        db.rollback()
        logger.exception("premium_weekly_report_error")
        return {"ok": False, "error": "exception"}
    finally:
        db.close()
