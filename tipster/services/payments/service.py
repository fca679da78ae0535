"""
PaymentService: manual bank-transfer payment requests.

Responsibilities:
- Creation with the one-PENDING-per-user rule
- Receipt (evidence) attachment by the owner while PENDING
- Admin approval: status transition + premium extension in one unit of work
- Admin rejection
- Listings and aggregate counts for the admin panel and reports
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tipster.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from tipster.db.session import unit_of_work
from tipster.models.payment import PackageType, Payment, PaymentStatus
from tipster.models.user import User
from tipster.services.audit.service import AuditService
from tipster.services.entitlements import clock
from tipster.services.entitlements.service import EntitlementService
from tipster.services.site_settings.settings_service import SiteSettingsService
from tipster.storage.base import EvidenceStorage
from tipster.storage.local import LocalEvidenceStorage
from tipster.utils.metrics import (
    payment_requests_total,
    payment_resolutions_total,
    premium_extensions_total,
)

logger = logging.getLogger(__name__)


def parse_amount(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError("amount must be a positive number", field="amount")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a positive number", field="amount")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("amount must be greater than 0", field="amount")
    return amount.quantize(Decimal("0.01"))


def parse_package_type(value: Any) -> str:
    normalized = str(value or "").strip().upper()
    if normalized not in {p.value for p in PackageType}:
        raise ValidationError("package_type must be MONTHLY or YEARLY", field="package_type")
    return normalized


class PaymentService:
    def __init__(self, db: Session, storage: EvidenceStorage | None = None):
        self.db = db
        self.storage = storage or LocalEvidenceStorage()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def create_request(self, user_id: str, amount: Any, package_type: Any) -> Payment:
        amount_value = parse_amount(amount)
        package = parse_package_type(package_type)
        with unit_of_work(self.db):
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found", user_id=user_id)
            if user.is_admin:
                raise ConflictError("Admin accounts already have full access", user_id=user_id)
            if self._pending_for_user(user_id) is not None:
                raise ConflictError(
                    "You already have a pending payment. Please complete it first.",
                    user_id=user_id,
                )
            payment = Payment(user_id=user_id, amount=amount_value, package_type=package)
            self.db.add(payment)
            try:
                self.db.flush()
            except IntegrityError:
                # Lost a race against a concurrent request: the partial unique index fired
                raise ConflictError(
                    "You already have a pending payment. Please complete it first.",
                    user_id=user_id,
                )
        payment_requests_total.labels(package_type=package).inc()
        logger.info(
            "payment_requested",
            extra={"user_id": user_id, "payment_id": payment.id, "package_type": package},
        )
        return payment

    def attach_evidence(self, payment_id: str, user_id: str, filename: str, content: bytes) -> Payment:
        """
        Attach (or replace) the receipt on the caller's PENDING payment.
        The previous reference is read from the locked row, so overlapping
        uploads each release exactly the file they replaced.
        """
        payment = self.get_payment(payment_id)
        if payment.user_id != user_id:
            raise ForbiddenError("Payment belongs to another user", payment_id=payment_id)
        if not payment.is_pending:
            raise ConflictError("Payment has already been processed", payment_id=payment_id, status=payment.status)

        new_ref = self.storage.save_receipt(payment_id, filename, content)
        try:
            with unit_of_work(self.db):
                locked = self._lock_payment(payment_id)
                if not locked.is_pending:
                    raise ConflictError("Payment has already been processed", payment_id=payment_id)
                old_ref = locked.receipt_ref
                same_ref = Payment.receipt_ref.is_(None) if old_ref is None else Payment.receipt_ref == old_ref
                result = self.db.execute(
                    update(Payment)
                    .where(
                        Payment.id == payment_id,
                        Payment.user_id == user_id,
                        Payment.status == PaymentStatus.PENDING.value,
                        same_ref,
                    )
                    .values(receipt_ref=new_ref, updated_at=clock.utcnow())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise ConflictError("Receipt was changed concurrently, retry the upload", payment_id=payment_id)
        except Exception:
            self.storage.release(new_ref)
            raise
        if old_ref and old_ref != new_ref:
            self.storage.release(old_ref)
        logger.info("payment_receipt_attached", extra={"user_id": user_id, "payment_id": payment_id})
        return payment

    def receipt_path(self, payment_id: str, requester: User) -> Path:
        payment = self.get_payment(payment_id)
        if not requester.is_admin and payment.user_id != requester.id:
            raise ForbiddenError("Cannot access another user's receipt", payment_id=payment_id)
        path = self.storage.resolve(payment.receipt_ref) if payment.receipt_ref else None
        if path is None or not path.is_file():
            raise NotFoundError("Receipt not uploaded", payment_id=payment_id)
        return path

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    def approve(
        self,
        payment_id: str,
        admin_note: str | None = None,
        admin_id: str | None = None,
        now: datetime | None = None,
    ) -> tuple[Payment, User]:
        """
        PENDING -> APPROVED and premium extension for the payment owner.
        Both writes commit together or not at all; a concurrent second approval
        finds no PENDING row and gets ConflictError.
        """
        now = now or clock.utcnow()
        with unit_of_work(self.db):
            payment = self.get_payment(payment_id)
            if not payment.is_pending:
                raise ConflictError("Payment has already been processed", payment_id=payment_id, status=payment.status)
            self._resolve(payment_id, PaymentStatus.APPROVED, admin_note, admin_id, now)
            days = SiteSettingsService(self.db).duration_days(payment.package_type)
            user = EntitlementService(self.db).extend_premium(payment.user_id, days, now=now)
            AuditService(self.db).log(
                actor_type="admin",
                actor_id=admin_id,
                action="payment_approved",
                entity_type="payment",
                entity_id=payment_id,
                payload={
                    "user_id": payment.user_id,
                    "package_type": payment.package_type,
                    "days": days,
                    "premium_until": user.premium_until.isoformat(),
                },
            )
        payment_resolutions_total.labels(status=PaymentStatus.APPROVED.value).inc()
        premium_extensions_total.labels(source="payment").inc()
        logger.info(
            "payment_approved",
            extra={"payment_id": payment_id, "user_id": user.id, "admin_id": admin_id, "days": days},
        )
        return payment, user

    def reject(
        self,
        payment_id: str,
        admin_note: str | None = None,
        admin_id: str | None = None,
        now: datetime | None = None,
    ) -> Payment:
        now = now or clock.utcnow()
        with unit_of_work(self.db):
            payment = self.get_payment(payment_id)
            if not payment.is_pending:
                raise ConflictError("Payment has already been processed", payment_id=payment_id, status=payment.status)
            self._resolve(payment_id, PaymentStatus.REJECTED, admin_note, admin_id, now)
            AuditService(self.db).log(
                actor_type="admin",
                actor_id=admin_id,
                action="payment_rejected",
                entity_type="payment",
                entity_id=payment_id,
                payload={"user_id": payment.user_id, "admin_note": admin_note},
            )
        payment_resolutions_total.labels(status=PaymentStatus.REJECTED.value).inc()
        logger.info("payment_rejected", extra={"payment_id": payment_id, "admin_id": admin_id})
        return payment

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found", payment_id=payment_id)
        return payment

    def list_for_user(self, user_id: str) -> list[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
            .all()
        )

    def list_payments(
        self,
        status: str | None = None,
        package_type: str | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[Payment], int]:
        q = self.db.query(Payment)
        if status:
            q = q.filter(Payment.status == status.upper())
        if package_type:
            q = q.filter(Payment.package_type == package_type.upper())
        total = q.count()
        items = (
            q.order_by(Payment.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def payment_counts(self) -> dict[str, Any]:
        rows = (
            self.db.query(Payment.status, func.count(Payment.id))
            .group_by(Payment.status)
            .all()
        )
        by_status = {status: count for status, count in rows}
        revenue = (
            self.db.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.status == PaymentStatus.APPROVED.value)
            .scalar()
        )
        return {
            "total_payments": sum(by_status.values()),
            "approved_payments": by_status.get(PaymentStatus.APPROVED.value, 0),
            "pending_payments": by_status.get(PaymentStatus.PENDING.value, 0),
            "rejected_payments": by_status.get(PaymentStatus.REJECTED.value, 0),
            "total_revenue": float(revenue or 0),
        }

    def daily_counts(self, days: int = 7, now: datetime | None = None) -> list[dict[str, Any]]:
        """Payments created per day over the last `days` days (oldest first, zero-filled)."""
        now = clock.as_utc(now or clock.utcnow())
        first_day = (now - timedelta(days=days - 1)).date()
        since = datetime.combine(first_day, datetime.min.time(), tzinfo=now.tzinfo)
        day = func.date(Payment.created_at)
        rows = (
            self.db.query(day, func.count(Payment.id))
            .filter(Payment.created_at >= since)
            .group_by(day)
            .all()
        )
        counts = {str(d): c for d, c in rows}
        return [
            {"date": (first_day + timedelta(days=i)).isoformat(), "count": counts.get((first_day + timedelta(days=i)).isoformat(), 0)}
            for i in range(days)
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pending_for_user(self, user_id: str) -> Payment | None:
        return (
            self.db.query(Payment)
            .filter(Payment.user_id == user_id, Payment.status == PaymentStatus.PENDING.value)
            .first()
        )

    def _lock_payment(self, payment_id: str) -> Payment:
        payment = (
            self.db.query(Payment)
            .filter(Payment.id == payment_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if payment is None:
            raise NotFoundError("Payment not found", payment_id=payment_id)
        return payment

    def _resolve(
        self,
        payment_id: str,
        status: PaymentStatus,
        admin_note: str | None,
        admin_id: str | None,
        now: datetime,
    ) -> None:
        """Conditional PENDING -> status; zero rows means someone resolved it first."""
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING.value)
            .values(
                status=status.value,
                admin_note=(admin_note or "").strip() or None,
                resolved_by=admin_id,
                resolved_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Payment has already been processed", payment_id=payment_id)
