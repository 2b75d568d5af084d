"""Admin API endpoints."""
from fastapi import APIRouter, Query

from accessguard.dependencies import AdminUser, DbSession
from accessguard.schemas.admin import ActivityEvent, AdminStats, AdminUserList
from accessguard.services import admin_service

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/stats", response_model=AdminStats)
async def get_admin_stats(
    session: DbSession,
    admin: AdminUser,
):
    """Get platform-wide statistics."""
    return await admin_service.get_admin_stats(session)


@router.get("/users", response_model=AdminUserList)
async def list_users(
    session: DbSession,
    admin: AdminUser,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List all users with their scan counts."""
    users, total = await admin_service.get_all_users(session, limit=limit, offset=offset)
    return AdminUserList(users=users, total=total)


@router.get("/activity", response_model=list[ActivityEvent])
async def recent_activity(
    session: DbSession,
    admin: AdminUser,
    limit: int = Query(15, ge=1, le=100),
):
    """Recent signups, scans and subscription changes."""
    return await admin_service.get_recent_activity(session, limit=limit)
