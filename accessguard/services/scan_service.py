"""Scan log persistence, history and dashboard figures."""
import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.models.scan import ScanLog, Site
from accessguard.schemas.scan import DashboardStats, ScanResult

logger = logging.getLogger(__name__)


async def log_scan(
    session: AsyncSession,
    user_id: int | None,
    ip: str,
    result: ScanResult,
    scan_duration_ms: int | None = None,
) -> ScanLog | None:
    """Record a completed scan for rate limiting, history and analytics.

    When the URL matches one of the user's registered sites, the site's last
    score is updated too. Commits on success; failures are logged and
    swallowed.
    """
    try:
        site = None
        if user_id is not None:
            site_result = await session.execute(
                select(Site).where(Site.user_id == user_id, Site.url == result.url),
            )
            site = site_result.scalar_one_or_none()

            if site is not None:
                site.last_scan_score = result.score
                site.last_scan_at = datetime.utcnow()

        scan_log = ScanLog(
            user_id=user_id,
            ip_address=ip,
            url=result.url,
            score=result.score,
            violations_count=len(result.violations),
            scan_duration_ms=scan_duration_ms,
            violations=[v.model_dump(mode="json") for v in result.violations],
            passes=result.passes,
            incomplete=result.incomplete,
            site_id=site.id if site else None,
        )
        session.add(scan_log)
        await session.commit()
        return scan_log
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Error logging scan of %s: %s", result.url, e)
        return None


async def get_user_scan_history(
    session: AsyncSession,
    user_id: int,
    site_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[ScanLog], int]:
    """Newest-first scan history for a user, with the unpaginated total."""
    conditions = [ScanLog.user_id == user_id]
    if site_id is not None:
        conditions.append(ScanLog.site_id == site_id)

    total = (
        await session.execute(select(func.count(ScanLog.id)).where(*conditions))
    ).scalar() or 0

    result = await session.execute(
        select(ScanLog)
        .where(*conditions)
        .order_by(ScanLog.created_at.desc(), ScanLog.id.desc())
        .offset(offset)
        .limit(limit),
    )
    return list(result.scalars().all()), total


async def get_scan_by_id(
    session: AsyncSession,
    scan_id: int,
    user_id: int,
) -> ScanLog | None:
    """A single scan owned by the user."""
    result = await session.execute(
        select(ScanLog).where(ScanLog.id == scan_id, ScanLog.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def get_dashboard_stats(session: AsyncSession, user_id: int) -> DashboardStats:
    """Sites count, scans this month and average of the sites' latest scores."""
    sites_count = (
        await session.execute(
            select(func.count(Site.id)).where(Site.user_id == user_id),
        )
    ).scalar() or 0

    start_of_month = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    scans_this_month = (
        await session.execute(
            select(func.count(ScanLog.id)).where(
                ScanLog.user_id == user_id,
                ScanLog.created_at >= start_of_month,
            ),
        )
    ).scalar() or 0

    scores = (
        await session.execute(
            select(Site.last_scan_score).where(
                Site.user_id == user_id,
                Site.last_scan_score.is_not(None),
            ),
        )
    ).scalars().all()

    average_score = None
    if scores:
        average_score = int(sum(scores) / len(scores) + 0.5)

    return DashboardStats(
        sites_count=sites_count,
        scans_this_month=scans_this_month,
        average_score=average_score,
    )
