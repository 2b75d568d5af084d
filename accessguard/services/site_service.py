"""Registered sites and plan-based site limits."""
import logging

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.core.plans import get_site_limit
from accessguard.models.scan import Site
from accessguard.models.user import User
from accessguard.utils.validators import validate_url_syntax

logger = logging.getLogger(__name__)


async def get_user_sites(session: AsyncSession, user_id: int) -> list[Site]:
    """Sites registered by a user, newest first."""
    result = await session.execute(
        select(Site)
        .where(Site.user_id == user_id)
        .order_by(Site.created_at.desc(), Site.id.desc()),
    )
    return list(result.scalars().all())


async def count_user_sites(session: AsyncSession, user_id: int) -> int:
    result = await session.execute(
        select(func.count(Site.id)).where(Site.user_id == user_id),
    )
    return result.scalar() or 0


async def add_site(
    session: AsyncSession,
    user: User,
    url: str,
    name: str | None = None,
) -> Site:
    """Register a site for weekly monitoring.

    Raises InvalidURLError for a malformed URL and HTTPException(403) when
    the plan's site limit is reached or the URL is already registered.
    """
    url = validate_url_syntax(url)
    limit = get_site_limit(user.plan)

    if await count_user_sites(session, user.id) >= limit:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Site limit reached. Your {user.plan.value} plan allows up to {limit} sites.",
        )

    existing = await session.execute(
        select(Site.id).where(Site.user_id == user.id, Site.url == url),
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This URL is already registered.",
        )

    site = Site(user_id=user.id, url=url, name=(name or "").strip() or None)
    session.add(site)
    await session.flush()

    logger.info("User %s registered site %s", user.id, url)
    return site


async def remove_site(session: AsyncSession, site_id: int, user_id: int) -> bool:
    """Delete a site owned by the user; False when there is none."""
    result = await session.execute(
        select(Site).where(Site.id == site_id, Site.user_id == user_id),
    )
    site = result.scalar_one_or_none()
    if site is None:
        return False

    await session.delete(site)
    await session.flush()
    return True
