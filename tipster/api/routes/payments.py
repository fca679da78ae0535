"""
Payment requests (manual bank transfer) and site settings.
Order: /settings and /my before /{payment_id}.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tipster.api.routes.users import user_to_dict
from tipster.db.session import get_db, unit_of_work
from tipster.models.payment import Payment
from tipster.models.user import User
from tipster.services.auth.jwt import get_current_user, require_admin
from tipster.services.payments.service import PaymentService
from tipster.services.site_settings.settings_service import SiteSettingsService

router = APIRouter(prefix="/api/payments", tags=["payments"])


class CreatePaymentRequest(BaseModel):
    amount: Any
    package_type: str


class ResolvePaymentRequest(BaseModel):
    admin_note: str | None = None


def payment_to_dict(p: Payment, user: User | None = None) -> dict:
    data = {
        "id": p.id,
        "user_id": p.user_id,
        "amount": float(p.amount) if p.amount is not None else None,
        "package_type": p.package_type,
        "status": p.status,
        "has_receipt": bool(p.receipt_ref),
        "admin_note": p.admin_note,
        "resolved_by": p.resolved_by,
        "resolved_at": p.resolved_at.isoformat() if p.resolved_at else None,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }
    if user is not None:
        data["user_email"] = user.email
    return data


# ---------- Settings ----------
@router.get("/settings")
def get_settings(db: Session = Depends(get_db)):
    """Prices, durations and bank transfer instructions (public)."""
    with unit_of_work(db):
        return SiteSettingsService(db).as_dict()


@router.put("/settings", dependencies=[Depends(require_admin)])
def update_settings(payload: dict = Body(...), db: Session = Depends(get_db)):
    with unit_of_work(db):
        return SiteSettingsService(db).update(payload)


# ---------- User ----------
@router.get("/my")
def my_payments(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [payment_to_dict(p) for p in PaymentService(db).list_for_user(user.id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_payment(
    body: CreatePaymentRequest = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment = PaymentService(db).create_request(user.id, body.amount, body.package_type)
    return payment_to_dict(payment)


@router.post("/{payment_id}/receipt")
def upload_receipt(
    payment_id: str,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    content = file.file.read()
    payment = PaymentService(db).attach_evidence(payment_id, user.id, file.filename or "", content)
    return payment_to_dict(payment)


@router.get("/{payment_id}/receipt")
def download_receipt(
    payment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    path = PaymentService(db).receipt_path(payment_id, user)
    return FileResponse(path)


# ---------- Admin ----------
@router.get("", dependencies=[Depends(require_admin)])
def list_payments(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status_filter: str | None = Query(None, alias="status"),
    package_type: str | None = None,
):
    items, total = PaymentService(db).list_payments(
        status=status_filter, package_type=package_type, page=page, page_size=page_size
    )
    user_ids = {p.user_id for p in items}
    users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()} if user_ids else {}
    return {
        "items": [payment_to_dict(p, users.get(p.user_id)) for p in items],
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": (total + page_size - 1) // page_size,
    }


@router.put("/{payment_id}/approve")
def approve_payment(
    payment_id: str,
    body: ResolvePaymentRequest | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    note = body.admin_note if body else None
    payment, user = PaymentService(db).approve(payment_id, admin_note=note, admin_id=admin.id)
    return {"payment": payment_to_dict(payment, user), "user": user_to_dict(user)}


@router.put("/{payment_id}/reject")
def reject_payment(
    payment_id: str,
    body: ResolvePaymentRequest | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    note = body.admin_note if body else None
    payment = PaymentService(db).reject(payment_id, admin_note=note, admin_id=admin.id)
    return {"payment": payment_to_dict(payment)}
