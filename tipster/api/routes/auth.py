"""
Registration and login (bearer JWT). Login is rate limited per client IP.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tipster.api.routes.users import user_to_dict
from tipster.db.session import get_db
from tipster.models.user import User, UserRole
from tipster.services.auth.jwt import create_access_token, reconcile_user
from tipster.services.auth.login_rate_limit import (
    check_login_rate_limit,
    get_client_ip,
    reset_login_attempts,
)
from tipster.services.auth.passwords import hash_password, verify_password

logger = logging.getLogger("auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user: dict


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest = Body(...), db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email")
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    user = User(email=email, password_hash=hash_password(body.password), role=UserRole.NORMAL.value)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    db.refresh(user)
    logger.info("user_registered", extra={"user_id": user.id})
    return {
        "access_token": create_access_token(user.id, user.email),
        "token_type": "bearer",
        "user": user_to_dict(user),
    }


@router.post("/login", response_model=Token)
def login(request: Request, body: LoginRequest = Body(...), db: Session = Depends(get_db)):
    """
    Expects JSON: { "email": "...", "password": "..." }.
    Rate limited to prevent brute-force.
    """
    client_ip = get_client_ip(request)
    email = body.email.strip().lower()
    if not check_login_rate_limit(client_ip, email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
        )

    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.is_active or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    reset_login_attempts(client_ip, email)
    user = reconcile_user(db, user)
    return {
        "access_token": create_access_token(user.id, user.email),
        "token_type": "bearer",
        "user": user_to_dict(user),
    }
