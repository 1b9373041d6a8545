# app/models/workspace.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base


class Workspace(Base):
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    plan: Mapped[str] = mapped_column(String(32), nullable=False, default="free")
    stripe_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    billing_cycle_start: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # plan limits, overwritten whenever a subscription checkout completes
    usage_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    links_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=25)
    payouts_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    domains_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    ai_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    tags_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    folders_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    users_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    payment_failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # the program exposed through the workspace's partner API
    default_program_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)

    # API-only users created for integrations; never receive e-mail
    is_machine: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class WorkspaceUser(Base):
    __tablename__ = "workspace_users"

    workspace_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="owner")


class RestrictedToken(Base):
    __tablename__ = "restricted_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hashed_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    rate_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=60)


class DefaultDomains(Base):
    __tablename__ = "default_domains"

    workspace_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )
    # premium short domain unlocked by any paid plan
    premium_domain: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
