# app/models/commission.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base
from app.models.partner import Partner


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class Commission(Base):
    """Earned reward for one partner event. Written by the conversion pipeline, read here."""

    __tablename__ = "commissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False
    )
    # kept when the partner is removed; such rows list without a partner
    partner_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("partners.id", ondelete="SET NULL"), nullable=True
    )
    customer_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    payout_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    invoice_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    type: Mapped[str] = mapped_column(String(16), nullable=False)  # click/lead/sale
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    earnings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    partner: Mapped[Optional[Partner]] = relationship("Partner", lazy="raise")
    customer: Mapped[Optional[Customer]] = relationship("Customer", lazy="raise")


Index("ix_commissions_program_created", Commission.program_id, Commission.created_at.desc())
Index("ix_commissions_partner", Commission.partner_id)
