# app/routers/commissions.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import WorkspaceContext, get_workspace_context
from app.core.errors import AppError, to_http
from app.schemas.commissions import (
    CommissionOut,
    CommissionSortBy,
    CommissionStatus,
    CommissionsQuery,
    CommissionType,
    DateInterval,
    SortOrder,
)
from app.services.commissions import list_commissions

router = APIRouter(prefix="/commissions", tags=["Commissions"])


# GET /commissions - commissions for the workspace's program
@router.get("", response_model=list[CommissionOut])
async def get_commissions(
    program_id: str = Query(alias="programId"),
    status: Optional[CommissionStatus] = None,
    type: Optional[CommissionType] = None,
    customer_id: Optional[str] = Query(default=None, alias="customerId"),
    payout_id: Optional[str] = Query(default=None, alias="payoutId"),
    partner_id: Optional[str] = Query(default=None, alias="partnerId"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=100, ge=1, le=100, alias="pageSize"),
    sort_by: CommissionSortBy = Query(default=CommissionSortBy.created_at, alias="sortBy"),
    sort_order: SortOrder = Query(default=SortOrder.desc, alias="sortOrder"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    interval: DateInterval = DateInterval.all,
    db: AsyncSession = Depends(get_db),
    ctx: WorkspaceContext = Depends(get_workspace_context),
):
    query = CommissionsQuery(
        status=status,
        type=type,
        customer_id=customer_id,
        payout_id=payout_id,
        partner_id=partner_id,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
        start=start,
        end=end,
        interval=interval,
    )
    try:
        return await list_commissions(db, ctx, program_id=program_id, query=query)
    except AppError as e:
        raise to_http(e)
