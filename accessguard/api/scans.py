"""Scan API endpoints."""
import logging

from fastapi import APIRouter, HTTPException, Query, status

from accessguard.config import get_settings
from accessguard.core.rate_limiter import require_scan_allowance
from accessguard.dependencies import AuthUser, ClientIP, CurrentUser, DbSession
from accessguard.schemas.scan import (
    ScanHistoryResponse,
    ScanLogDetailResponse,
    ScanLogResponse,
    ScanRequest,
    ScanResult,
)
from accessguard.services.scan_service import (
    get_scan_by_id,
    get_user_scan_history,
    log_scan,
)
from accessguard.services.scanner import ScanError, scan_url
from accessguard.utils.validators import InvalidURLError, validate_url_syntax

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/api/scan", tags=["Scans"])

SCAN_FAILED_MESSAGE = (
    "Failed to scan the page. The site may be blocking automated access "
    "or taking too long to load."
)


@router.post("", response_model=ScanResult)
async def create_scan(
    data: ScanRequest,
    session: DbSession,
    ip: ClientIP,
    user: CurrentUser = None,
):
    """Scan one page for WCAG 2.1 AA issues.

    Anonymous and free users are limited per IP address; pro and agency
    plans scan without limit.
    """
    await require_scan_allowance(session, ip, user)

    if not data.url or not data.url.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL is required")

    try:
        url = validate_url_syntax(data.url)
    except InvalidURLError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter a valid URL",
        )

    try:
        result = await scan_url(url)
    except InvalidURLError as e:
        # Unsafe targets and unresolvable hosts
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ScanError as e:
        logger.error("Scan error for %s: %s", url, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SCAN_FAILED_MESSAGE,
        )

    await log_scan(
        session,
        user.id if user else None,
        ip,
        result,
        result.scan_duration,
    )

    return result


@router.get("/history", response_model=ScanHistoryResponse)
async def scan_history(
    session: DbSession,
    user: AuthUser,
    limit: int = Query(settings.DEFAULT_HISTORY_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    site_id: int | None = None,
):
    """Recent scans of the current user, newest first."""
    scans, total = await get_user_scan_history(
        session,
        user.id,
        site_id=site_id,
        limit=min(limit, settings.MAX_HISTORY_LIMIT),
        offset=offset,
    )
    return ScanHistoryResponse(
        scans=[ScanLogResponse.model_validate(scan) for scan in scans],
        total=total,
    )


@router.get("/{scan_id}", response_model=ScanLogDetailResponse)
async def get_scan(
    scan_id: int,
    session: DbSession,
    user: AuthUser,
):
    """Get a stored scan with its violations."""
    scan = await get_scan_by_id(session, scan_id, user.id)
    if scan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scan not found")
    return scan
