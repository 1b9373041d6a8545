# app/models/discount.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Discount(Base):
    __tablename__ = "discounts"
    __table_args__ = (
        CheckConstraint("type IN ('percentage','flat')", name="discounts_type_check"),
        CheckConstraint("amount >= 0", name="discounts_amount_check"),
        CheckConstraint("max_duration IS NULL OR max_duration >= 0", name="discounts_max_duration_check"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # percentage: 0..100, flat: cents
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)

    # number of billing periods the discount applies for; NULL = forever
    max_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    coupon_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    coupon_test_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow, server_default=func.now()
    )
