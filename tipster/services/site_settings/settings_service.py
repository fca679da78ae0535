"""Pricing, package durations and bank transfer instructions (site_settings row id=1)."""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from tipster.core.config import settings
from tipster.core.errors import ValidationError
from tipster.models.payment import PackageType
from tipster.models.site_settings import SiteSettings


DEFAULT_BANK_NAME = "Türkiye İş Bankası"
DEFAULT_IBAN = "TR64 0006 4000 0011 2345 6789 01"
DEFAULT_ACCOUNT_NAME = "Tahminci.info"
DEFAULT_BRANCH_NAME = "Merkez Şubesi"

_TEXT_FIELDS = ("bank_name", "iban_number", "account_name", "branch_name")


def default_days(package_type: str) -> int:
    if package_type == PackageType.YEARLY.value:
        return settings.premium_yearly_days
    return settings.premium_monthly_days


class SiteSettingsService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self) -> SiteSettings | None:
        return self.db.query(SiteSettings).filter(SiteSettings.id == 1).first()

    def get_or_create(self) -> SiteSettings:
        row = self.get()
        if row:
            return row
        row = SiteSettings(
            id=1,
            monthly_price=Decimal(str(settings.premium_monthly_price)),
            yearly_price=Decimal(str(settings.premium_yearly_price)),
            monthly_days=settings.premium_monthly_days,
            yearly_days=settings.premium_yearly_days,
            bank_name=DEFAULT_BANK_NAME,
            iban_number=DEFAULT_IBAN,
            account_name=DEFAULT_ACCOUNT_NAME,
            branch_name=DEFAULT_BRANCH_NAME,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def duration_days(self, package_type: str) -> int:
        """Premium days granted by a package; defaults when the row or field is empty."""
        row = self.get()
        if row is not None:
            days = row.yearly_days if package_type == PackageType.YEARLY.value else row.monthly_days
            if days and days > 0:
                return int(days)
        return default_days(package_type)

    def as_dict(self) -> dict[str, Any]:
        """Effective values (defaults where the row is empty)."""
        row = self.get_or_create()
        return {
            "monthly_price": float(row.monthly_price if row.monthly_price is not None else settings.premium_monthly_price),
            "yearly_price": float(row.yearly_price if row.yearly_price is not None else settings.premium_yearly_price),
            "monthly_days": self.duration_days(PackageType.MONTHLY.value),
            "yearly_days": self.duration_days(PackageType.YEARLY.value),
            "bank_name": row.bank_name or "",
            "iban_number": row.iban_number or "",
            "account_name": row.account_name or "",
            "branch_name": row.branch_name or "",
            "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        }

    def update(self, data: dict[str, Any]) -> dict[str, Any]:
        """Update settings from the admin panel. Caller commits."""
        row = self.get_or_create()
        for field in ("monthly_price", "yearly_price"):
            if field in data and data[field] is not None:
                setattr(row, field, _parse_price(field, data[field]))
        for field in ("monthly_days", "yearly_days"):
            if field in data and data[field] is not None:
                setattr(row, field, _parse_days(field, data[field]))
        for field in _TEXT_FIELDS:
            if field in data and data[field] is not None:
                setattr(row, field, str(data[field]).strip()[:128])
        row.updated_at = datetime.now(timezone.utc)
        self.db.add(row)
        self.db.flush()
        return self.as_dict()


def _parse_price(field: str, value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    if price < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    return price


def _parse_days(field: str, value: Any) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be a positive integer", field=field)
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive integer", field=field)
    if days <= 0:
        raise ValidationError(f"{field} must be a positive integer", field=field)
    return days
