"""Database models import."""
from accessguard.models.scan import Impact, ScanLog, Site
from accessguard.models.user import (
    Base,
    PlanType,
    Subscription,
    SubscriptionStatus,
    User,
    UserRole,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "PlanType",
    "Subscription",
    "SubscriptionStatus",
    "Site",
    "ScanLog",
    "Impact",
]
