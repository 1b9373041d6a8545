# app/schemas/discounts.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from app.schemas.base import CamelModel


class DiscountType(str, Enum):
    percentage = "percentage"
    flat = "flat"


def _normalize_type(v):
    # "fixed" is accepted for flat-amount discounts
    if isinstance(v, str) and v.strip().lower() == "fixed":
        return DiscountType.flat.value
    return v


class _DiscountTerms(CamelModel):
    amount: float = Field(ge=0)
    type: DiscountType = DiscountType.percentage
    max_duration: Optional[int] = Field(default=None, ge=0)
    coupon_id: Optional[str] = None
    coupon_test_id: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _type_alias(cls, v):
        return _normalize_type(v)

    @model_validator(mode="after")
    def _percentage_cap(self):
        if self.type == DiscountType.percentage and self.amount > 100:
            raise ValueError("Percentage discounts cannot exceed 100.")
        return self


class CreateDiscountIn(_DiscountTerms):
    """Structural checks only; exclusivity rules run in the service."""

    program_id: Optional[str] = None
    partner_ids: Optional[List[str]] = None

    @field_validator("partner_ids")
    @classmethod
    def _dedupe_partner_ids(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        out: list[str] = []
        seen: set[str] = set()
        for pid in v:
            pid = (pid or "").strip()
            if not pid:
                raise ValueError("partnerIds cannot contain empty values.")
            if pid not in seen:
                seen.add(pid)
                out.append(pid)
        return out


class UpdateDiscountIn(CamelModel):
    amount: Optional[float] = Field(default=None, ge=0)
    type: Optional[DiscountType] = None
    max_duration: Optional[int] = Field(default=None, ge=0)
    coupon_id: Optional[str] = None
    coupon_test_id: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _type_alias(cls, v):
        return _normalize_type(v)

    # omitted means "keep"; an explicit null is never a valid value
    @field_validator("amount", "type")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null.")
        return v


class DiscountOut(CamelModel):
    id: str
    program_id: str
    amount: float
    type: DiscountType
    max_duration: Optional[int] = None
    coupon_id: Optional[str] = None
    coupon_test_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DiscountListItemOut(DiscountOut):
    partners_count: int = 0
    is_default: bool = False


class DiscountDeletedOut(CamelModel):
    id: str


class DiscountPartnerOut(CamelModel):
    id: str
    name: str
    image: Optional[str] = None
    email: Optional[str] = None
