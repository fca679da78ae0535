"""PaymentService: request creation, evidence, approval/rejection, reporting."""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from tipster.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from tipster.db.session import unit_of_work
from tipster.models import AuditLog, Payment, SiteSettings, User
from tipster.services.entitlements import clock
from tipster.services.entitlements.service import EntitlementService
from tipster.services.payments.service import PaymentService

PNG = b"\x89PNG\r\n\x1a\nreceipt"


class TestCreateRequest:
    def test_creates_pending_request(self, db, make_user):
        user = make_user()
        payment = PaymentService(db).create_request(user.id, "50", " monthly ")
        assert payment.status == "PENDING"
        assert payment.package_type == "MONTHLY"
        assert payment.amount == Decimal("50.00")
        assert payment.receipt_ref is None

    def test_second_pending_request_conflicts(self, db, make_user):
        user = make_user()
        svc = PaymentService(db)
        svc.create_request(user.id, 50, "MONTHLY")
        with pytest.raises(ConflictError):
            svc.create_request(user.id, 500, "YEARLY")
        assert db.query(Payment).filter(Payment.user_id == user.id).count() == 1

    def test_new_request_allowed_after_resolution(self, db, make_user):
        user = make_user()
        svc = PaymentService(db)
        first = svc.create_request(user.id, 50, "MONTHLY")
        svc.reject(first.id, admin_note="no transfer found")
        second = svc.create_request(user.id, 50, "MONTHLY")
        assert second.id != first.id
        assert second.status == "PENDING"

    def test_storage_index_backs_the_pending_rule(self, db, make_user):
        user = make_user()
        svc = PaymentService(db)
        svc.create_request(user.id, 50, "MONTHLY")
        # Simulate a concurrent request that passed the pre-check
        with patch.object(PaymentService, "_pending_for_user", return_value=None):
            with pytest.raises(ConflictError):
                svc.create_request(user.id, 50, "MONTHLY")
        assert db.query(Payment).filter(Payment.user_id == user.id).count() == 1

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, True, "NaN"])
    def test_invalid_amount(self, db, make_user, amount):
        user = make_user()
        with pytest.raises(ValidationError):
            PaymentService(db).create_request(user.id, amount, "MONTHLY")

    @pytest.mark.parametrize("package_type", ["WEEKLY", "", None])
    def test_invalid_package_type(self, db, make_user, package_type):
        user = make_user()
        with pytest.raises(ValidationError):
            PaymentService(db).create_request(user.id, 50, package_type)

    def test_admin_cannot_request_premium(self, db, make_user):
        admin = make_user(role="ADMIN")
        with pytest.raises(ConflictError):
            PaymentService(db).create_request(admin.id, 50, "MONTHLY")


class TestAttachEvidence:
    def test_attach_and_replace(self, db, make_user, make_payment, storage, receipt_dir):
        user = make_user()
        payment = make_payment(user)
        svc = PaymentService(db, storage=storage)

        svc.attach_evidence(payment.id, user.id, "receipt.png", PNG)
        first_ref = payment.receipt_ref
        assert (receipt_dir / first_ref).is_file()

        svc.attach_evidence(payment.id, user.id, "second.JPG", PNG)
        second_ref = payment.receipt_ref
        assert second_ref != first_ref
        assert second_ref.endswith(".jpg")
        assert not (receipt_dir / first_ref).exists()
        assert (receipt_dir / second_ref).is_file()

    def test_other_users_payment_is_forbidden(self, db, make_user, make_payment, storage):
        owner, other = make_user(), make_user()
        payment = make_payment(owner)
        with pytest.raises(ForbiddenError):
            PaymentService(db, storage=storage).attach_evidence(payment.id, other.id, "r.png", PNG)

    def test_resolved_payment_conflicts(self, db, make_user, make_payment, storage):
        user = make_user()
        payment = make_payment(user, status="APPROVED")
        with pytest.raises(ConflictError):
            PaymentService(db, storage=storage).attach_evidence(payment.id, user.id, "r.png", PNG)

    def test_unknown_payment(self, db, make_user, storage):
        user = make_user()
        with pytest.raises(NotFoundError):
            PaymentService(db, storage=storage).attach_evidence("missing", user.id, "r.png", PNG)

    def test_non_image_rejected(self, db, make_user, make_payment, storage):
        user = make_user()
        payment = make_payment(user)
        with pytest.raises(ValidationError):
            PaymentService(db, storage=storage).attach_evidence(payment.id, user.id, "r.pdf", b"%PDF")

    def test_failed_commit_releases_new_file(self, db, make_user, make_payment, storage, receipt_dir):
        user = make_user()
        payment = make_payment(user)
        failure = OperationalError("UPDATE payments", {}, Exception("disk I/O error"))
        with patch.object(db, "commit", side_effect=failure):
            with pytest.raises(StorageFailure):
                PaymentService(db, storage=storage).attach_evidence(payment.id, user.id, "r.png", PNG)
        assert list(receipt_dir.iterdir()) == []
        db.expire_all()
        assert db.get(Payment, payment.id).receipt_ref is None


class TestApprove:
    def test_approve_extends_premium_and_audits(self, db, make_user, make_payment, now):
        user = make_user()
        payment = make_payment(user)

        approved, owner = PaymentService(db).approve(payment.id, admin_note=" ok ", admin_id="admin-1", now=now)

        assert approved.status == "APPROVED"
        assert approved.admin_note == "ok"
        assert approved.resolved_by == "admin-1"
        assert owner.role == "PREMIUM"
        assert clock.as_utc(owner.premium_until) == now + timedelta(days=30)
        audit = db.query(AuditLog).filter(AuditLog.entity_id == payment.id).one()
        assert audit.action == "payment_approved"
        assert audit.payload["days"] == 30

    def test_yearly_uses_configured_duration(self, db, make_user, make_payment, now):
        db.add(SiteSettings(id=1, yearly_days=400))
        db.commit()
        user = make_user()
        payment = make_payment(user, package_type="YEARLY", amount=Decimal("500"))

        _, owner = PaymentService(db).approve(payment.id, now=now)

        assert clock.as_utc(owner.premium_until) == now + timedelta(days=400)

    def test_approval_stacks_on_remaining_time(self, db, make_user, make_payment, now):
        user = make_user(role="PREMIUM", premium_until=now + timedelta(days=5))
        payment = make_payment(user)
        _, owner = PaymentService(db).approve(payment.id, now=now)
        assert clock.as_utc(owner.premium_until) == now + timedelta(days=35)

    def test_double_approval_conflicts(self, db, make_user, make_payment, now):
        user = make_user()
        payment = make_payment(user)
        svc = PaymentService(db)
        svc.approve(payment.id, now=now)
        with pytest.raises(ConflictError):
            svc.approve(payment.id, now=now)
        db.expire_all()
        assert clock.as_utc(db.get(User, user.id).premium_until) == now + timedelta(days=30)

    def test_rejected_payment_cannot_be_approved(self, db, make_user, make_payment, now):
        user = make_user()
        payment = make_payment(user, status="REJECTED")
        with pytest.raises(ConflictError):
            PaymentService(db).approve(payment.id, now=now)

    def test_unknown_payment(self, db):
        with pytest.raises(NotFoundError):
            PaymentService(db).approve("missing")

    def test_failed_extension_rolls_back_status(self, db, make_user, make_payment, now):
        user = make_user()
        payment = make_payment(user)
        with patch.object(EntitlementService, "extend_premium", side_effect=SQLAlchemyError("write failed")):
            with pytest.raises(StorageFailure):
                PaymentService(db).approve(payment.id, now=now)

        db.expire_all()
        assert db.get(Payment, payment.id).status == "PENDING"
        fresh = db.get(User, user.id)
        assert fresh.role == "NORMAL"
        assert fresh.premium_until is None
        assert db.query(AuditLog).count() == 0

    def test_failed_audit_rolls_back_extension(self, db, make_user, make_payment, now):
        user = make_user()
        payment = make_payment(user)
        with patch(
            "tipster.services.payments.service.AuditService.log",
            side_effect=OperationalError("INSERT audit_logs", {}, Exception("locked")),
        ):
            with pytest.raises(StorageFailure):
                PaymentService(db).approve(payment.id, now=now)

        db.expire_all()
        assert db.get(Payment, payment.id).status == "PENDING"
        assert db.get(User, user.id).role == "NORMAL"


class TestReject:
    def test_reject_has_no_entitlement_effect(self, db, make_user, make_payment):
        user = make_user()
        payment = make_payment(user)
        rejected = PaymentService(db).reject(payment.id, admin_note="amount mismatch", admin_id="admin-1")
        assert rejected.status == "REJECTED"
        assert rejected.admin_note == "amount mismatch"
        db.expire_all()
        assert db.get(User, user.id).role == "NORMAL"

    def test_reject_twice_conflicts(self, db, make_user, make_payment):
        user = make_user()
        payment = make_payment(user)
        svc = PaymentService(db)
        svc.reject(payment.id)
        with pytest.raises(ConflictError):
            svc.reject(payment.id)


class TestReporting:
    def test_list_payments_filters_and_paginates(self, db, make_user, make_payment):
        for _ in range(3):
            make_payment(make_user(), status="APPROVED")
        make_payment(make_user(), package_type="YEARLY")

        svc = PaymentService(db)
        approved, total = svc.list_payments(status="approved", page=1, page_size=2)
        assert total == 3
        assert len(approved) == 2
        yearly, total = svc.list_payments(package_type="YEARLY")
        assert total == 1
        assert yearly[0].status == "PENDING"

    def test_payment_counts(self, db, make_user, make_payment):
        make_payment(make_user(), status="APPROVED", amount=Decimal("50"))
        make_payment(make_user(), status="APPROVED", amount=Decimal("500"), package_type="YEARLY")
        make_payment(make_user(), status="REJECTED")
        make_payment(make_user())

        counts = PaymentService(db).payment_counts()

        assert counts["total_payments"] == 4
        assert counts["approved_payments"] == 2
        assert counts["pending_payments"] == 1
        assert counts["rejected_payments"] == 1
        assert counts["total_revenue"] == 550.0

    def test_daily_counts_are_zero_filled(self, db, make_user, make_payment, now):
        make_payment(make_user(), status="APPROVED", created_at=now - timedelta(days=3))
        make_payment(make_user(), status="APPROVED", created_at=now - timedelta(days=3, hours=2))
        make_payment(make_user(), status="APPROVED", created_at=now)
        make_payment(make_user(), status="APPROVED", created_at=now - timedelta(days=30))

        days = PaymentService(db).daily_counts(days=7, now=now)

        assert [d["date"] for d in days] == [
            "2026-10-12", "2026-10-13", "2026-10-14", "2026-10-15",
            "2026-10-16", "2026-10-17", "2026-10-18",
        ]
        assert [d["count"] for d in days] == [0, 0, 0, 2, 0, 0, 1]
