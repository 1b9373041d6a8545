# app/services/plans.py
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PlanLimits:
    links: int
    clicks: int
    payouts: int
    domains: int
    ai: int
    tags: int
    folders: int
    users: int
    api: int  # requests per minute for restricted tokens


@dataclass(frozen=True)
class BillingPlan:
    name: str
    limits: PlanLimits
    price_ids: tuple[str, ...] = field(default_factory=tuple)


# Stripe price ids per plan (monthly + yearly, live + test)
PLANS: tuple[BillingPlan, ...] = (
    BillingPlan(
        name="Pro",
        limits=PlanLimits(
            links=1_000, clicks=50_000, payouts=0, domains=10,
            ai=1_000, tags=25, folders=3, users=3, api=600,
        ),
        price_ids=("price_pro_monthly", "price_pro_yearly", "price_pro_monthly_test", "price_pro_yearly_test"),
    ),
    BillingPlan(
        name="Business",
        limits=PlanLimits(
            links=5_000, clicks=150_000, payouts=2_500_00, domains=40,
            ai=1_000, tags=100, folders=20, users=10, api=1_200,
        ),
        price_ids=(
            "price_business_monthly",
            "price_business_yearly",
            "price_business_monthly_test",
            "price_business_yearly_test",
        ),
    ),
    BillingPlan(
        name="Advanced",
        limits=PlanLimits(
            links=50_000, clicks=1_000_000, payouts=15_000_00, domains=100,
            ai=1_000, tags=200, folders=50, users=20, api=3_000,
        ),
        price_ids=(
            "price_advanced_monthly",
            "price_advanced_yearly",
            "price_advanced_monthly_test",
            "price_advanced_yearly_test",
        ),
    ),
)


def get_plan_from_price_id(price_id: str | None) -> BillingPlan | None:
    if not price_id:
        return None
    for plan in PLANS:
        if price_id in plan.price_ids:
            return plan
    return None
