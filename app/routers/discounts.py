# app/routers/discounts.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import WorkspaceContext, get_workspace_context
from app.core.errors import AppError, InvalidInputError, to_http
from app.schemas.discounts import (
    CreateDiscountIn,
    DiscountDeletedOut,
    DiscountListItemOut,
    DiscountOut,
    DiscountPartnerOut,
    UpdateDiscountIn,
)
from app.services.discounts import (
    create_discount,
    delete_discount,
    list_discount_partners,
    list_discounts,
    update_discount,
)

router = APIRouter(prefix="/programs/{program_id}/discounts", tags=["Discounts"])


@router.post("/create", response_model=DiscountOut, status_code=201)
async def create_discount_action(
    program_id: str,
    body: CreateDiscountIn,
    db: AsyncSession = Depends(get_db),
    ctx: WorkspaceContext = Depends(get_workspace_context),
):
    # body.programId is optional; when present it must agree with the path
    if body.program_id and body.program_id != program_id:
        raise to_http(InvalidInputError("programId in body does not match the URL."))
    try:
        return await create_discount(db, ctx, program_id=program_id, data=body)
    except AppError as e:
        raise to_http(e)


@router.get("", response_model=list[DiscountListItemOut])
async def get_discounts(
    program_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: WorkspaceContext = Depends(get_workspace_context),
):
    try:
        return await list_discounts(db, ctx, program_id=program_id)
    except AppError as e:
        raise to_http(e)


# GET /programs/{program_id}/discounts/partners - partners that are part of a discount
@router.get("/partners", response_model=list[DiscountPartnerOut])
async def get_discount_partners(
    program_id: str,
    discount_id: str = Query(alias="discountId", min_length=1),
    db: AsyncSession = Depends(get_db),
    ctx: WorkspaceContext = Depends(get_workspace_context),
):
    try:
        return await list_discount_partners(db, ctx, program_id=program_id, discount_id=discount_id)
    except AppError as e:
        raise to_http(e)


@router.patch("/{discount_id}", response_model=DiscountOut)
async def patch_discount(
    program_id: str,
    discount_id: str,
    body: UpdateDiscountIn,
    db: AsyncSession = Depends(get_db),
    ctx: WorkspaceContext = Depends(get_workspace_context),
):
    try:
        return await update_discount(db, ctx, program_id=program_id, discount_id=discount_id, data=body)
    except AppError as e:
        raise to_http(e)


@router.delete("/{discount_id}", response_model=DiscountDeletedOut)
async def remove_discount(
    program_id: str,
    discount_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: WorkspaceContext = Depends(get_workspace_context),
):
    try:
        deleted_id = await delete_discount(db, ctx, program_id=program_id, discount_id=discount_id)
        return DiscountDeletedOut(id=deleted_id)
    except AppError as e:
        raise to_http(e)
