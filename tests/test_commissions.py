from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from app.core.errors import NotFoundError
from app.models.commission import Commission, Customer
from app.schemas.commissions import CommissionOut, CommissionsQuery
from app.services.commissions import list_commissions

BASE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def commissions(seeded, session_factory):
    async with session_factory() as s:
        s.add(Customer(id="cus_1", workspace_id="ws_1", name="Carol", email="carol@example.test"))
        await s.flush()

        rows = [
            # id, partner, earnings, status, type, created offset (hours), customer, payout
            ("cm_01", "pa", 1000, "pending", "sale", 0, "cus_1", None),
            ("cm_02", "pa", 0, "pending", "sale", 1, "cus_1", None),        # zero earnings
            ("cm_03", "pb", 500, "paid", "lead", 2, None, "po_1"),
            ("cm_04", "pb", -200, "refunded", "sale", 3, "cus_1", None),    # reversal
            ("cm_05", "pc", 500, "pending", "click", 4, None, None),
            ("cm_06", "pc", 500, "pending", "sale", 5, None, None),
            ("cm_07", "pa", 500, "processed", "sale", 6, None, "po_1"),
        ]
        for cid, partner, earnings, status, ctype, hours, customer, payout in rows:
            s.add(
                Commission(
                    id=cid,
                    program_id="prog_1",
                    partner_id=partner,
                    customer_id=customer,
                    payout_id=payout,
                    type=ctype,
                    amount=abs(earnings) * 10,
                    earnings=earnings,
                    status=status,
                    currency="usd",
                    created_at=BASE + timedelta(hours=hours),
                    updated_at=BASE + timedelta(hours=hours),
                )
            )

        # other program's commission
        s.add(
            Commission(
                id="cm_99", program_id="prog_2", partner_id="pd", type="sale",
                amount=100, earnings=100, status="pending", created_at=BASE, updated_at=BASE,
            )
        )
        await s.commit()


def _q(**kw):
    return CommissionsQuery(**kw)


@pytest.mark.asyncio
async def test_non_positive_earnings_never_listed(db, ctx, commissions):
    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q())

    ids = {r.id for r in rows}
    assert ids == {"cm_01", "cm_03", "cm_05", "cm_06", "cm_07"}

    # even when the filters point straight at them
    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q(status="refunded"))
    assert rows == []


@pytest.mark.asyncio
async def test_default_order_is_newest_first(db, ctx, commissions):
    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q())

    assert [r.id for r in rows] == ["cm_07", "cm_06", "cm_05", "cm_03", "cm_01"]


@pytest.mark.asyncio
async def test_equality_filters(db, ctx, commissions):
    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q(partner_id="pa"))
    assert {r.id for r in rows} == {"cm_01", "cm_07"}

    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q(payout_id="po_1", type="lead"))
    assert [r.id for r in rows] == ["cm_03"]

    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q(customer_id="cus_1"))
    assert [r.id for r in rows] == ["cm_01"]


@pytest.mark.asyncio
async def test_rows_carry_partner_and_customer(db, ctx, commissions):
    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q(partner_id="pa", sort_order="asc"))

    assert rows[0].partner.name == "Partner pa"
    assert rows[0].customer.email == "carol@example.test"
    assert rows[1].customer is None


@pytest.mark.asyncio
async def test_explicit_range_is_inclusive(db, ctx, commissions):
    query = _q(start=BASE + timedelta(hours=2), end=BASE + timedelta(hours=5), sort_order="asc")

    rows = await list_commissions(db, ctx, program_id="prog_1", query=query)

    assert [r.id for r in rows] == ["cm_03", "cm_05", "cm_06"]


@pytest.mark.asyncio
async def test_pages_are_disjoint_and_cover_everything_on_ties(db, ctx, commissions):
    # cm_03, cm_05, cm_06, cm_07 all earn 500
    seen = []
    for page in (1, 2, 3):
        rows = await list_commissions(
            db,
            ctx,
            program_id="prog_1",
            query=_q(sort_by="earnings", sort_order="desc", page=page, page_size=2),
        )
        seen.append([r.id for r in rows])

    assert seen[0] == ["cm_01", "cm_07"]
    assert seen[1] == ["cm_06", "cm_05"]
    assert seen[2] == ["cm_03"]

    flat = [cid for page in seen for cid in page]
    assert sorted(flat) == ["cm_01", "cm_03", "cm_05", "cm_06", "cm_07"]


@pytest.mark.asyncio
async def test_program_must_be_workspace_default(db, ctx, commissions):
    with pytest.raises(NotFoundError):
        await list_commissions(db, ctx, program_id="prog_2", query=_q())


@pytest.mark.asyncio
async def test_commission_without_partner_is_listed(db, ctx, commissions, session_factory):
    async with session_factory() as s:
        s.add(
            Commission(
                id="cm_08", program_id="prog_1", partner_id=None, type="sale",
                amount=300, earnings=30, status="pending",
                created_at=BASE + timedelta(hours=7), updated_at=BASE + timedelta(hours=7),
            )
        )
        await s.commit()

    rows = await list_commissions(db, ctx, program_id="prog_1", query=_q())

    assert rows[0].id == "cm_08"
    assert rows[0].partner_id is None
    assert rows[0].partner is None

    out = CommissionOut.model_validate(rows[0]).model_dump(by_alias=True)
    assert out["partnerId"] is None
    assert out["partner"] is None
