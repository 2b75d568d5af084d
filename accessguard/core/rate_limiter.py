"""Rate limiting for free-tier scans."""
import logging
import math
from datetime import datetime, timedelta

from fastapi import HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.config import get_settings
from accessguard.models.scan import ScanLog
from accessguard.models.user import User

logger = logging.getLogger(__name__)

settings = get_settings()


class RateLimitError(HTTPException):
    """Custom rate limit exception."""

    def __init__(
        self,
        detail: str,
        retry_after: int | None = None,
        headers: dict | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
        )
        if retry_after:
            self.headers = {"Retry-After": str(retry_after)}
        elif headers:
            self.headers = headers


def get_client_ip(request: Request) -> str:
    """Get the client address, honouring the proxy headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


async def get_recent_scan_count(
    session: AsyncSession,
    ip: str,
    hours: int,
) -> float:
    """Count scans logged for an IP in the last `hours` hours.

    Returns infinity when the count cannot be read, so callers fail closed.
    """
    since = datetime.utcnow() - timedelta(hours=hours)

    try:
        result = await session.execute(
            select(func.count(ScanLog.id)).where(
                ScanLog.ip_address == ip,
                ScanLog.created_at >= since,
            ),
        )
    except SQLAlchemyError as e:
        logger.error("Error counting recent scans for %s: %s", ip, e)
        return math.inf

    return result.scalar() or 0


async def can_user_scan(
    session: AsyncSession,
    ip: str,
    user: User | None,
) -> bool:
    """Paid plans scan without limit; everyone else is limited per IP."""
    if user is not None and user.is_paid:
        return True

    recent = await get_recent_scan_count(session, ip, settings.RATE_LIMIT_WINDOW_HOURS)
    return recent < settings.FREE_SCANS_PER_WINDOW


async def require_scan_allowance(
    session: AsyncSession,
    ip: str,
    user: User | None,
) -> None:
    """Require scan allowance or raise RateLimitError."""
    if await can_user_scan(session, ip, user):
        return

    window = settings.RATE_LIMIT_WINDOW_HOURS
    per = "hour" if window == 1 else f"{window} hours"
    raise RateLimitError(
        detail=(
            f"Rate limit exceeded. Free tier allows "
            f"{settings.FREE_SCANS_PER_WINDOW} scans per {per}."
        ),
        retry_after=window * 3600,
    )
