# app/models/program.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base
from app.models.partner import Partner


class Program(Base):
    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # programs <-> discounts reference each other; the FK is added after both tables exist
    default_discount_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        ForeignKey("discounts.id", use_alter=True, name="programs_default_discount_fk"),
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ProgramEnrollment(Base):
    __tablename__ = "program_enrollments"
    __table_args__ = (
        UniqueConstraint("program_id", "partner_id", name="program_enrollments_program_partner_uq"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False
    )
    partner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False
    )

    # at most one discount per enrollment
    discount_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("discounts.id", ondelete="SET NULL"), nullable=True, index=True
    )

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="approved")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    partner: Mapped[Partner] = relationship("Partner", lazy="selectin")
