"""
Gated read endpoints for predictions and coupons.
Lists always return every active item (premium fields redacted for non-premium
requesters); detail of a premium item without entitlement is PREMIUM_REQUIRED.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tipster.core.errors import NotFoundError
from tipster.db.session import get_db
from tipster.models.content import Coupon, Prediction
from tipster.models.user import User
from tipster.paywall import deliver_detail, deliver_list
from tipster.services.auth.jwt import get_optional_user

router = APIRouter(prefix="/api", tags=["content"])


def _role(user: User | None) -> str | None:
    return user.role if user is not None else None


def _page(q, page: int, page_size: int) -> tuple[list, int]:
    total = q.count()
    return q.offset((page - 1) * page_size).limit(page_size).all(), total


@router.get("/predictions")
def list_predictions(
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    league: str | None = None,
    is_premium: bool | None = None,
):
    q = db.query(Prediction).filter(Prediction.is_active.is_(True))
    if league:
        q = q.filter(Prediction.league_name == league)
    if is_premium is not None:
        q = q.filter(Prediction.is_premium.is_(is_premium))
    items, total = _page(q.order_by(Prediction.match_date.desc(), Prediction.id.desc()), page, page_size)
    return {"items": deliver_list(items, _role(user)), "total": total, "page": page, "page_size": page_size}


@router.get("/predictions/{prediction_id}")
def get_prediction(
    prediction_id: int,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
):
    item = db.get(Prediction, prediction_id)
    if item is None or not item.is_active:
        raise NotFoundError("Prediction not found", prediction_id=prediction_id)
    return deliver_detail(item, _role(user))


@router.get("/coupons")
def list_coupons(
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    is_premium: bool | None = None,
):
    q = db.query(Coupon).filter(Coupon.is_active.is_(True))
    if is_premium is not None:
        q = q.filter(Coupon.is_premium.is_(is_premium))
    items, total = _page(q.order_by(Coupon.created_at.desc(), Coupon.id.desc()), page, page_size)
    return {"items": deliver_list(items, _role(user)), "total": total, "page": page, "page_size": page_size}


@router.get("/coupons/{coupon_id}")
def get_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
):
    item = db.get(Coupon, coupon_id)
    if item is None or not item.is_active:
        raise NotFoundError("Coupon not found", coupon_id=coupon_id)
    return deliver_detail(item, _role(user))
