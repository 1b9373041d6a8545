# app/services/commissions.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.deps import WorkspaceContext
from app.models.commission import Commission
from app.schemas.commissions import CommissionSortBy, CommissionsQuery, SortOrder
from app.services.date_ranges import get_start_end_dates
from app.services.programs import ensure_default_program

_SORT_COLUMNS = {
    CommissionSortBy.created_at: Commission.created_at,
    CommissionSortBy.amount: Commission.amount,
    CommissionSortBy.earnings: Commission.earnings,
}


async def list_commissions(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    program_id: str,
    query: CommissionsQuery,
) -> list[Commission]:
    ensure_default_program(ctx, program_id)

    date_range = get_start_end_dates(interval=query.interval, start=query.start, end=query.end)

    # zero/negative earnings (reversed, voided) are never listed
    filters = [
        Commission.earnings > 0,
        Commission.program_id == program_id,
        Commission.created_at >= date_range.start_date,
        Commission.created_at <= date_range.end_date,
    ]
    if query.partner_id is not None:
        filters.append(Commission.partner_id == query.partner_id)
    if query.status is not None:
        filters.append(Commission.status == query.status.value)
    if query.type is not None:
        filters.append(Commission.type == query.type.value)
    if query.customer_id is not None:
        filters.append(Commission.customer_id == query.customer_id)
    if query.payout_id is not None:
        filters.append(Commission.payout_id == query.payout_id)

    sort_col = _SORT_COLUMNS[query.sort_by]
    if query.sort_order == SortOrder.asc:
        order_by = (sort_col.asc(), Commission.id.asc())
    else:
        order_by = (sort_col.desc(), Commission.id.desc())

    stmt = (
        select(Commission)
        .where(*filters)
        .options(selectinload(Commission.partner), selectinload(Commission.customer))
        .order_by(*order_by)
        .offset((query.page - 1) * query.page_size)
        .limit(query.page_size)
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())
