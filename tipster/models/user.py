import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String

from tipster.db.base import Base


class UserRole(str, enum.Enum):
    NORMAL = "NORMAL"
    PREMIUM = "PREMIUM"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    admin_username = Column(String(50), nullable=True)  # public author name for admins
    # Written only by EntitlementService (role/premium_until pair).
    # PREMIUM => premium_until set; any other role => premium_until NULL.
    role = Column(String(20), nullable=False, default=UserRole.NORMAL.value, index=True)
    premium_until = Column(DateTime(timezone=True), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
