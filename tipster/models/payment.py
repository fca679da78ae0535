"""
Payment request: manual bank transfer. User creates it, uploads a receipt image,
admin approves (extends premium) or rejects. Rows are never deleted.
"""
import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String, Text, text

from tipster.db.base import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PackageType(str, enum.Enum):
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        # One PENDING request per user (partial unique index)
        Index(
            "ix_payments_user_id_pending",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    package_type = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    receipt_ref = Column(String(512), nullable=True)  # opaque EvidenceStorage reference
    admin_note = Column(Text, nullable=True)
    resolved_by = Column(String, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING.value
