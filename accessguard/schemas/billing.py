"""Billing schemas."""
from pydantic import BaseModel

from accessguard.models.user import PlanType


class CheckoutRequest(BaseModel):
    plan: str | None = None


class RedirectResponse(BaseModel):
    """URL of a hosted Stripe page."""
    url: str


class PlanResponse(BaseModel):
    """Purchasable plan."""
    key: PlanType
    name: str
    price: int
    trial_days: int
    site_limit: int
    available: bool

    model_config = {"from_attributes": True}
