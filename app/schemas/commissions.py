# app/schemas/commissions.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from app.schemas.base import CamelModel


class CommissionStatus(str, Enum):
    pending = "pending"
    processed = "processed"
    paid = "paid"
    refunded = "refunded"
    duplicate = "duplicate"
    fraud = "fraud"
    canceled = "canceled"


class CommissionType(str, Enum):
    click = "click"
    lead = "lead"
    sale = "sale"


class CommissionSortBy(str, Enum):
    created_at = "createdAt"
    amount = "amount"
    earnings = "earnings"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class DateInterval(str, Enum):
    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"
    last_90d = "90d"
    last_1y = "1y"
    mtd = "mtd"
    qtd = "qtd"
    ytd = "ytd"
    all = "all"


class CommissionsQuery(CamelModel):
    status: Optional[CommissionStatus] = None
    type: Optional[CommissionType] = None
    customer_id: Optional[str] = None
    payout_id: Optional[str] = None
    partner_id: Optional[str] = None

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=100, ge=1, le=100)
    sort_by: CommissionSortBy = CommissionSortBy.created_at
    sort_order: SortOrder = SortOrder.desc

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    interval: DateInterval = DateInterval.all


class CommissionPartnerOut(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    image: Optional[str] = None
    country: Optional[str] = None


class CommissionCustomerOut(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    external_id: Optional[str] = None
    country: Optional[str] = None
    created_at: datetime


class CommissionOut(CamelModel):
    id: str
    type: CommissionType
    amount: int
    earnings: int = Field(gt=0)
    currency: str
    status: CommissionStatus
    quantity: int
    invoice_id: Optional[str] = None
    payout_id: Optional[str] = None
    partner_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    partner: Optional[CommissionPartnerOut] = None
    customer: Optional[CommissionCustomerOut] = None
