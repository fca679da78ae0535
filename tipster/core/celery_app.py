"""
Celery application: broker and result backend from settings.
Premium lifecycle tasks live in tipster.workers.tasks.premium; the beat schedule
runs in settings.scheduler_timezone.
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from tipster.core.config import settings
from tipster.core.logging import configure_logging

celery_app = Celery(
    "tipster",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "tipster.workers.tasks.premium",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=3600,
    result_expires=86400,
    timezone=settings.scheduler_timezone,
    enable_utc=True,
    beat_schedule={
        "sweep-expired-premium": {
            "task": "tipster.workers.tasks.premium.sweep_expired_premium",
            "schedule": crontab(hour=0, minute=0),
        },
        "snapshot-premium-stats": {
            "task": "tipster.workers.tasks.premium.snapshot_premium_stats",
            "schedule": crontab(minute=0),
        },
        "warn-expiring-premium-7d": {
            "task": "tipster.workers.tasks.premium.warn_expiring_premium",
            "schedule": crontab(hour=9, minute=0),
            "kwargs": {"days_ahead": settings.expiry_warning_days_long},
        },
        "warn-expiring-premium-1d": {
            "task": "tipster.workers.tasks.premium.warn_expiring_premium",
            "schedule": crontab(hour=10, minute=0),
            "kwargs": {"days_ahead": settings.expiry_warning_days_short},
        },
        "weekly-premium-report": {
            "task": "tipster.workers.tasks.premium.weekly_premium_report",
            "schedule": crontab(hour=8, minute=0, day_of_week="sun"),
        },
    },
)


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging()
