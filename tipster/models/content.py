"""
Read models for gated content. Authoring (CRUD) lives outside this service;
only the columns the access gate and listings need are mapped here.
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from tipster.db.base import Base


coupon_predictions = Table(
    "coupon_predictions",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id"), primary_key=True),
    Column("prediction_id", Integer, ForeignKey("predictions.id"), primary_key=True),
)


class Prediction(Base):
    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_name = Column(String(128), nullable=False, default="")
    home_team = Column(String(128), nullable=False)
    away_team = Column(String(128), nullable=False)
    match_date = Column(DateTime(timezone=True), nullable=False)
    prediction_type = Column(String(64), nullable=False)
    prediction_text = Column(Text, nullable=True)
    odds = Column(Float, nullable=False)
    confidence = Column(Integer, nullable=False, default=0)  # 0..100
    analysis = Column(Text, nullable=True)  # redacted for non-premium list views
    is_premium = Column(Boolean, nullable=False, default=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    result_status = Column(String(16), nullable=False, default="PENDING")  # PENDING / WON / LOST
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)  # redacted for non-premium list views
    is_premium = Column(Boolean, nullable=False, default=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    result_status = Column(String(16), nullable=False, default="PENDING")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    predictions = relationship("Prediction", secondary=coupon_predictions, lazy="selectin", order_by="Prediction.id")
