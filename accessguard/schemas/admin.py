"""Admin API schemas."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from accessguard.models.user import PlanType


class AdminStats(BaseModel):
    total_users: int
    paid_users: int
    trial_users: int
    total_scans: int
    scans_today: int
    scans_this_week: int
    scans_this_month: int
    average_score: int | None
    mrr: int  # USD per month


class AdminUserResponse(BaseModel):
    id: int
    email: str
    plan: PlanType
    stripe_customer_id: str | None
    created_at: datetime
    scan_count: int

    model_config = {"from_attributes": True}


class AdminUserList(BaseModel):
    users: list[AdminUserResponse]
    total: int


class ActivityEvent(BaseModel):
    """Entry of the admin activity feed."""
    type: Literal["signup", "scan", "subscription"]
    description: str
    timestamp: datetime
