import pytest

from app.core.errors import ConflictError, InvalidInputError
from app.models.program import Program, ProgramEnrollment
from app.services.discounts import ensure_default_slot_free, ensure_partners_assignable


def _enrollment(partner_id, discount_id=None):
    return ProgramEnrollment(id=f"pe_{partner_id}", program_id="prog_1", partner_id=partner_id, discount_id=discount_id)


def test_assignable_when_all_enrolled_and_free():
    ensure_partners_assignable(["pa", "pb"], [_enrollment("pa"), _enrollment("pb")])


def test_unknown_partner_is_invalid_input():
    with pytest.raises(InvalidInputError) as exc:
        ensure_partners_assignable(["pa", "zz"], [_enrollment("pa")])

    assert exc.value.details == {"partnerIds": ["zz"]}


def test_unknown_partner_checked_before_conflict():
    # pa already has a discount, but zz not being enrolled wins
    with pytest.raises(InvalidInputError):
        ensure_partners_assignable(["pa", "zz"], [_enrollment("pa", "disc_1")])


def test_partner_with_discount_is_conflict():
    with pytest.raises(ConflictError) as exc:
        ensure_partners_assignable(
            ["pa", "pb"],
            [_enrollment("pa"), _enrollment("pb", "disc_1")],
        )

    assert exc.value.code == "conflict"
    assert exc.value.details["partners"] == [{"partnerId": "pb", "discountId": "disc_1"}]


def test_default_slot_free():
    ensure_default_slot_free(Program(id="prog_1", workspace_id="ws_1", name="p", default_discount_id=None))


def test_default_slot_taken():
    program = Program(id="prog_1", workspace_id="ws_1", name="p", default_discount_id="disc_default")

    with pytest.raises(ConflictError) as exc:
        ensure_default_slot_free(program)

    assert exc.value.to_detail() == {
        "code": "conflict",
        "message": "A program can have only one default discount.",
        "details": {"defaultDiscountId": "disc_default"},
    }
