"""
Notification sink for advance-warning passes. Log today; email/SMS can implement
the same interface.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel

from tipster.services.entitlements import clock
from tipster.services.entitlements.models import ExpiringUser

logger = logging.getLogger(__name__)


class ExpiryWarning(BaseModel):
    user_id: str
    email: str
    premium_until: datetime
    days_left: int
    hours_left: int

    model_config = {"frozen": True}

    @classmethod
    def from_expiring(cls, user: ExpiringUser, now: datetime) -> "ExpiryWarning":
        return cls(
            user_id=user.user_id,
            email=user.email,
            premium_until=user.premium_until,
            days_left=clock.days_left(user.premium_until, now),
            hours_left=clock.hours_left(user.premium_until, now),
        )


class NotificationSink(ABC):
    @abstractmethod
    def notify_expiring(self, warnings: list[ExpiryWarning], days_ahead: int) -> None:
        raise NotImplementedError


class LogNotificationSink(NotificationSink):
    def notify_expiring(self, warnings: list[ExpiryWarning], days_ahead: int) -> None:
        # Short horizons report hours, longer ones days
        unit = "hours" if days_ahead <= 1 else "days"
        for w in warnings:
            left = w.hours_left if unit == "hours" else w.days_left
            logger.warning(
                "premium_expiring_soon",
                extra={
                    "user_id": w.user_id,
                    "days_ahead": days_ahead,
                    "premium_until": w.premium_until.isoformat(),
                    "remaining": f"{left} {unit}",
                },
            )
        logger.info("premium_expiry_warnings_sent", extra={"days_ahead": days_ahead, "count": len(warnings)})


def get_notification_sink() -> NotificationSink:
    return LogNotificationSink()
