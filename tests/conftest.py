"""Shared fixtures: in-memory SQLite schema, sessions and row factories."""
import os
from datetime import datetime, timezone
from decimal import Decimal

# Required settings must exist before tipster.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-signing-key-0123456789abcdef")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tipster.core.config import settings
from tipster.db.base import Base
from tipster.models import Payment, PaymentStatus, User, UserRole
from tipster.storage.local import LocalEvidenceStorage

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def receipt_dir(tmp_path, monkeypatch):
    path = tmp_path / "receipts"
    monkeypatch.setattr(settings, "receipt_upload_dir", str(path))
    return path


@pytest.fixture
def storage(receipt_dir):
    return LocalEvidenceStorage(str(receipt_dir))


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: str = UserRole.NORMAL.value, premium_until: datetime | None = None, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            role=role,
            premium_until=premium_until,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_payment(db):
    def _make(user: User, status: str = PaymentStatus.PENDING.value, **kwargs) -> Payment:
        payment = Payment(
            user_id=user.id,
            amount=kwargs.pop("amount", Decimal("50.00")),
            package_type=kwargs.pop("package_type", "MONTHLY"),
            status=status,
            **kwargs,
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    return _make


@pytest.fixture
def now() -> datetime:
    return NOW
