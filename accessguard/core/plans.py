"""Plan catalogue, pricing and plan-based feature limits."""
from dataclasses import dataclass

from accessguard.config import get_settings
from accessguard.models.user import PlanType


@dataclass(frozen=True)
class PlanInfo:
    """A purchasable plan."""
    key: PlanType
    name: str
    price: int  # USD per month
    trial_days: int
    price_id: str | None


# Registered-site allowance per plan
SITE_LIMITS: dict[str, int] = {
    PlanType.FREE.value: 0,
    PlanType.PRO.value: 3,
    PlanType.AGENCY.value: 10,
}

PLAN_PRICES: dict[str, int] = {
    PlanType.PRO.value: 49,
    PlanType.AGENCY.value: 149,
}


def get_plans() -> dict[str, PlanInfo]:
    """Purchasable plans keyed by slug; price ids come from settings."""
    settings = get_settings()
    return {
        PlanType.PRO.value: PlanInfo(
            key=PlanType.PRO,
            name="AccessGuard Pro",
            price=PLAN_PRICES[PlanType.PRO.value],
            trial_days=settings.TRIAL_DAYS,
            price_id=settings.STRIPE_PRO_PRICE_ID,
        ),
        PlanType.AGENCY.value: PlanInfo(
            key=PlanType.AGENCY,
            name="AccessGuard Agency",
            price=PLAN_PRICES[PlanType.AGENCY.value],
            trial_days=settings.TRIAL_DAYS,
            price_id=settings.STRIPE_AGENCY_PRICE_ID,
        ),
    }


def get_site_limit(plan: PlanType | str | None) -> int:
    """Maximum number of sites a plan may register."""
    if isinstance(plan, PlanType):
        plan = plan.value
    return SITE_LIMITS.get(plan or "", 0)


def plan_for_price_id(price_id: str | None) -> PlanType | None:
    """Map a Stripe price back to the plan it sells."""
    if not price_id:
        return None
    for info in get_plans().values():
        if info.price_id and info.price_id == price_id:
            return info.key
    return None
