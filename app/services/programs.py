# app/services/programs.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import WorkspaceContext
from app.core.errors import NotFoundError
from app.models.discount import Discount
from app.models.program import Program


def ensure_default_program(ctx: WorkspaceContext, program_id: str) -> None:
    # partner API routes only expose the workspace's default program
    if not program_id or program_id != ctx.workspace.default_program_id:
        raise NotFoundError("Program not found")


async def get_program_or_404(
    db: AsyncSession,
    *,
    workspace_id: str,
    program_id: str,
    for_update: bool = False,
) -> Program:
    """
    Load a program owned by the workspace.

    A program that exists under another workspace is reported as missing too,
    so ids don't leak across tenants.
    """
    stmt = select(Program).where(Program.id == program_id, Program.workspace_id == workspace_id)
    if for_update:
        stmt = stmt.with_for_update()

    # pointers are moved with bulk UPDATEs; never trust the identity map copy
    stmt = stmt.execution_options(populate_existing=True)

    res = await db.execute(stmt)
    program = res.scalar_one_or_none()
    if not program:
        raise NotFoundError("Program not found")
    return program


async def get_discount_or_404(
    db: AsyncSession,
    *,
    program_id: str,
    discount_id: str,
    for_update: bool = False,
) -> Discount:
    stmt = select(Discount).where(Discount.id == discount_id, Discount.program_id == program_id)
    if for_update:
        stmt = stmt.with_for_update()

    stmt = stmt.execution_options(populate_existing=True)

    res = await db.execute(stmt)
    discount = res.scalar_one_or_none()
    if not discount:
        raise NotFoundError("Discount not found")
    return discount
