"""Pricing, package durations and bank transfer instructions."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from tipster.db.base import Base


class SiteSettings(Base):
    """Single row (id=1). Managed from the admin panel; defaults materialise lazily."""

    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, default=1)
    monthly_price = Column(Numeric(12, 2), nullable=True)
    yearly_price = Column(Numeric(12, 2), nullable=True)
    monthly_days = Column(Integer, nullable=True)
    yearly_days = Column(Integer, nullable=True)

    # Bank transfer instructions shown on the payment page
    bank_name = Column(String(128), nullable=False, default="")
    iban_number = Column(String(64), nullable=False, default="")
    account_name = Column(String(128), nullable=False, default="")
    branch_name = Column(String(128), nullable=False, default="")

    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
