"""
Bearer JWT auth and the per-request premium reconciliation hook.

Every authenticated request passes through reconcile_if_expired before any
handler sees the user, so a lapsed PREMIUM is a NORMAL user for the whole
request even if the nightly sweep has not run yet.
"""
import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from tipster.core.config import settings
from tipster.db.session import get_db, unit_of_work
from tipster.models.user import User
from tipster.services.entitlements.service import EntitlementService
from tipster.utils.metrics import premium_downgrades_total

logger = logging.getLogger("auth")

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, email: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": user_id, "email": email, "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != "access" or not payload.get("sub"):
        return None
    return payload


def reconcile_user(db: Session, user: User) -> User:
    """Downgrade a lapsed premium in its own transaction; returns the fresh user."""
    with unit_of_work(db):
        result = EntitlementService(db).reconcile_if_expired(user.id)
    if result.downgraded:
        premium_downgrades_total.labels(trigger="request").inc()
        db.refresh(user)
    return user


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _active_user(db: Session, payload: dict) -> User | None:
    user = db.get(User, payload["sub"])
    if user is None or not user.is_active:
        return None
    return user


def _load_user(db: Session, token: str) -> User:
    payload = decode_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    user = _active_user(db, payload)
    if user is None:
        raise _unauthorized("User not found")
    return reconcile_user(db, user)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if not credentials:
        raise _unauthorized("Not authenticated")
    return _load_user(db, credentials.credentials)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User | None:
    """Public reads: a missing, stale or orphaned token means an anonymous caller."""
    if not credentials:
        return None
    payload = decode_token(credentials.credentials)
    if not payload:
        return None
    user = _active_user(db, payload)
    if user is None:
        return None
    return reconcile_user(db, user)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admin can access.",
        )
    return user
