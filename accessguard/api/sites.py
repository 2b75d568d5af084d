"""Registered sites API endpoints."""
from fastapi import APIRouter, HTTPException, status

from accessguard.core.plans import get_site_limit
from accessguard.dependencies import AuthUser, DbSession
from accessguard.schemas.site import (
    SiteCreate,
    SiteCreatedResponse,
    SiteDelete,
    SiteListResponse,
    SiteResponse,
)
from accessguard.services.site_service import add_site, get_user_sites, remove_site
from accessguard.utils.validators import InvalidURLError

router = APIRouter(prefix="/api/sites", tags=["Sites"])


@router.get("", response_model=SiteListResponse)
async def list_sites(
    session: DbSession,
    user: AuthUser,
):
    """Sites the current user monitors, with the plan's allowance."""
    sites = await get_user_sites(session, user.id)
    return SiteListResponse(
        sites=[SiteResponse.model_validate(site) for site in sites],
        plan=user.plan,
        site_limit=get_site_limit(user.plan),
    )


@router.post("", response_model=SiteCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_site(
    data: SiteCreate,
    session: DbSession,
    user: AuthUser,
):
    """Register a site for weekly monitoring."""
    if not data.url or not data.url.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL is required")

    try:
        site = await add_site(session, user, data.url, data.name)
    except InvalidURLError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter a valid URL",
        )

    await session.commit()
    return SiteCreatedResponse(site=SiteResponse.model_validate(site))


@router.delete("")
async def delete_site(
    data: SiteDelete,
    session: DbSession,
    user: AuthUser,
):
    """Stop monitoring a site."""
    if data.site_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="site_id is required")

    if not await remove_site(session, data.site_id, user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")

    await session.commit()
    return {"success": True}
