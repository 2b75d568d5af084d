"""Dashboard API endpoints."""
from fastapi import APIRouter

from accessguard.dependencies import AuthUser, DbSession
from accessguard.schemas.scan import DashboardStats
from accessguard.services.scan_service import get_dashboard_stats

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    session: DbSession,
    user: AuthUser,
):
    """Sites count, scans this month and average score for the current user."""
    return await get_dashboard_stats(session, user.id)
