# app/services/discounts.py
from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import WorkspaceContext
from app.core.errors import ConflictError, InvalidInputError
from app.core.ids import create_id
from app.models.discount import Discount
from app.models.partner import Partner
from app.models.program import Program, ProgramEnrollment
from app.schemas.discounts import CreateDiscountIn, DiscountType, UpdateDiscountIn
from app.services.audit import record_audit_log
from app.services.programs import ensure_default_program, get_discount_or_404, get_program_or_404

logger = logging.getLogger(__name__)


# -------------------------
# Business rules (pure)
# -------------------------

def ensure_partners_assignable(
    partner_ids: Sequence[str],
    enrollments: Sequence[ProgramEnrollment],
) -> None:
    """
    Every partner must be enrolled in the program and hold no discount yet.
    Unknown partners are checked before conflicts.
    """
    enrolled = {e.partner_id for e in enrollments}
    if len(enrollments) != len(partner_ids) or enrolled != set(partner_ids):
        missing = sorted(set(partner_ids) - enrolled)
        raise InvalidInputError(
            "Invalid partner IDs provided.",
            details={"partnerIds": missing},
        )

    taken = [e for e in enrollments if e.discount_id]
    if taken:
        raise ConflictError(
            "Partners cannot belong to more than one discount.",
            details={
                "partners": [
                    {"partnerId": e.partner_id, "discountId": e.discount_id}
                    for e in sorted(taken, key=lambda e: e.partner_id)
                ]
            },
        )


def ensure_default_slot_free(program: Program) -> None:
    if program.default_discount_id:
        raise ConflictError(
            "A program can have only one default discount.",
            details={"defaultDiscountId": program.default_discount_id},
        )


# -------------------------
# Helpers
# -------------------------

async def _load_enrollments(
    db: AsyncSession,
    program_id: str,
    partner_ids: Sequence[str],
) -> list[ProgramEnrollment]:
    # locked in id order so concurrent callers queue instead of deadlocking
    stmt = (
        select(ProgramEnrollment)
        .where(
            ProgramEnrollment.program_id == program_id,
            ProgramEnrollment.partner_id.in_(list(partner_ids)),
        )
        .order_by(ProgramEnrollment.id.asc())
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def _claim_enrollments(
    db: AsyncSession,
    *,
    program_id: str,
    partner_ids: Sequence[str],
    discount_id: str,
) -> None:
    # compare-and-swap: only enrollments still without a discount are updated
    res = await db.execute(
        update(ProgramEnrollment)
        .where(
            ProgramEnrollment.program_id == program_id,
            ProgramEnrollment.partner_id.in_(list(partner_ids)),
            ProgramEnrollment.discount_id.is_(None),
        )
        .values(discount_id=discount_id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != len(partner_ids):
        raise ConflictError(
            "Partners cannot belong to more than one discount.",
            details={"partnerIds": sorted(partner_ids)},
        )


async def _claim_default_slot(db: AsyncSession, *, program_id: str, discount_id: str) -> None:
    res = await db.execute(
        update(Program)
        .where(Program.id == program_id, Program.default_discount_id.is_(None))
        .values(default_discount_id=discount_id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise ConflictError("A program can have only one default discount.")


# -------------------------
# Operations
# -------------------------

async def create_discount(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    program_id: str,
    data: CreateDiscountIn,
) -> Discount:
    """
    Create a discount for a set of partners, or the program's default
    discount when no partners are given.

    Checks and writes share one transaction; the enrollment and default
    pointer updates only apply to rows that are still free, so a concurrent
    caller that got past the checks first makes this one fail with a conflict.
    """
    partner_ids = list(data.partner_ids or [])

    try:
        program = await get_program_or_404(
            db, workspace_id=ctx.workspace_id, program_id=program_id, for_update=True
        )

        if partner_ids:
            enrollments = await _load_enrollments(db, program.id, partner_ids)
            ensure_partners_assignable(partner_ids, enrollments)
        else:
            ensure_default_slot_free(program)

        discount = Discount(
            id=create_id("disc_"),
            program_id=program.id,
            amount=data.amount,
            type=data.type.value,
            max_duration=data.max_duration,
            coupon_id=data.coupon_id,
            coupon_test_id=data.coupon_test_id,
        )
        db.add(discount)
        await db.flush()

        if partner_ids:
            await _claim_enrollments(
                db, program_id=program.id, partner_ids=partner_ids, discount_id=discount.id
            )
        else:
            await _claim_default_slot(db, program_id=program.id, discount_id=discount.id)

        record_audit_log(
            db,
            ctx,
            action="discount.create",
            program_id=program.id,
            targets=[{"id": discount.id, "type": "discount"}],
            description="A new discount was created.",
        )

        await db.commit()
        await db.refresh(discount)
        # detached: a later rollback on this session must not expire what we hand back
        db.expunge(discount)

    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Created discount %s in program %s (%s)",
        discount.id,
        program_id,
        f"{len(partner_ids)} partners" if partner_ids else "default",
    )
    return discount


async def list_discounts(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    program_id: str,
) -> list[dict]:
    program = await get_program_or_404(db, workspace_id=ctx.workspace_id, program_id=program_id)

    counts = (
        select(ProgramEnrollment.discount_id, func.count().label("partners_count"))
        .where(ProgramEnrollment.program_id == program.id, ProgramEnrollment.discount_id.is_not(None))
        .group_by(ProgramEnrollment.discount_id)
        .subquery()
    )
    stmt = (
        select(Discount, func.coalesce(counts.c.partners_count, 0))
        .outerjoin(counts, counts.c.discount_id == Discount.id)
        .where(Discount.program_id == program.id)
        .order_by(Discount.created_at.asc(), Discount.id.asc())
    )
    res = await db.execute(stmt)

    out = []
    for discount, partners_count in res.all():
        out.append(
            {
                "id": discount.id,
                "program_id": discount.program_id,
                "amount": discount.amount,
                "type": discount.type,
                "max_duration": discount.max_duration,
                "coupon_id": discount.coupon_id,
                "coupon_test_id": discount.coupon_test_id,
                "created_at": discount.created_at,
                "updated_at": discount.updated_at,
                "partners_count": int(partners_count or 0),
                "is_default": discount.id == program.default_discount_id,
            }
        )
    return out


async def update_discount(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    program_id: str,
    discount_id: str,
    data: UpdateDiscountIn,
) -> Discount:
    """Change discount terms. Partner assignment and the default pointer stay as they are."""
    changes = data.model_dump(exclude_unset=True)

    try:
        program = await get_program_or_404(db, workspace_id=ctx.workspace_id, program_id=program_id)
        discount = await get_discount_or_404(
            db, program_id=program.id, discount_id=discount_id, for_update=True
        )

        new_type = changes.get("type", discount.type)
        new_type = new_type.value if isinstance(new_type, DiscountType) else new_type
        new_amount = changes.get("amount", discount.amount)
        if new_amount is None:
            raise InvalidInputError("amount cannot be null.")
        if new_type is None:
            raise InvalidInputError("type cannot be null.")
        if new_type == DiscountType.percentage.value and new_amount > 100:
            raise InvalidInputError("Percentage discounts cannot exceed 100.")

        discount.type = new_type
        discount.amount = new_amount
        for field in ("max_duration", "coupon_id", "coupon_test_id"):
            if field in changes:
                setattr(discount, field, changes[field])

        record_audit_log(
            db,
            ctx,
            action="discount.update",
            program_id=program.id,
            targets=[{"id": discount.id, "type": "discount"}],
            description="A discount was updated.",
        )

        await db.commit()
        await db.refresh(discount)
        db.expunge(discount)

    except Exception:
        await db.rollback()
        raise

    logger.info("Updated discount %s fields=%s", discount.id, sorted(changes))
    return discount


async def delete_discount(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    program_id: str,
    discount_id: str,
) -> str:
    """Remove a discount and detach it from enrollments and the default pointer."""
    try:
        program = await get_program_or_404(
            db, workspace_id=ctx.workspace_id, program_id=program_id, for_update=True
        )
        discount = await get_discount_or_404(
            db, program_id=program.id, discount_id=discount_id, for_update=True
        )

        await db.execute(
            update(ProgramEnrollment)
            .where(ProgramEnrollment.program_id == program.id, ProgramEnrollment.discount_id == discount.id)
            .values(discount_id=None)
            .execution_options(synchronize_session=False)
        )
        if program.default_discount_id == discount.id:
            program.default_discount_id = None
            await db.flush()

        await db.delete(discount)

        record_audit_log(
            db,
            ctx,
            action="discount.delete",
            program_id=program.id,
            targets=[{"id": discount.id, "type": "discount"}],
            description="A discount was deleted.",
        )

        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info("Deleted discount %s from program %s", discount_id, program_id)
    return discount_id


async def list_discount_partners(
    db: AsyncSession,
    ctx: WorkspaceContext,
    *,
    program_id: str,
    discount_id: str,
) -> list[Partner]:
    ensure_default_program(ctx, program_id)
    await get_discount_or_404(db, program_id=program_id, discount_id=discount_id)

    stmt = (
        select(Partner)
        .join(ProgramEnrollment, ProgramEnrollment.partner_id == Partner.id)
        .where(
            ProgramEnrollment.program_id == program_id,
            ProgramEnrollment.discount_id == discount_id,
        )
        .order_by(ProgramEnrollment.created_at.asc(), ProgramEnrollment.id.asc())
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())
