"""Schema imports."""
from accessguard.schemas.admin import (
    ActivityEvent,
    AdminStats,
    AdminUserList,
    AdminUserResponse,
)
from accessguard.schemas.billing import CheckoutRequest, PlanResponse, RedirectResponse
from accessguard.schemas.scan import (
    DashboardStats,
    ScanHistoryResponse,
    ScanLogDetailResponse,
    ScanLogResponse,
    ScanRequest,
    ScanResult,
    Violation,
    ViolationNode,
)
from accessguard.schemas.site import (
    SiteCreate,
    SiteCreatedResponse,
    SiteDelete,
    SiteListResponse,
    SiteResponse,
)
from accessguard.schemas.user import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterRequest,
    SubscriptionResponse,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "UserResponse",
    "UserUpdate",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "ProfileResponse",
    "SubscriptionResponse",
    "ScanRequest",
    "ScanResult",
    "Violation",
    "ViolationNode",
    "ScanLogResponse",
    "ScanLogDetailResponse",
    "ScanHistoryResponse",
    "DashboardStats",
    "SiteCreate",
    "SiteDelete",
    "SiteResponse",
    "SiteListResponse",
    "SiteCreatedResponse",
    "CheckoutRequest",
    "RedirectResponse",
    "PlanResponse",
    "AdminStats",
    "AdminUserResponse",
    "AdminUserList",
    "ActivityEvent",
]
