"""Scheduled job endpoints, triggered by an external scheduler."""
from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, status

from accessguard.config import get_settings
from accessguard.core.security import verify_bearer_secret
from accessguard.dependencies import DbSession
from accessguard.services.weekly_scan import run_weekly_scan

router = APIRouter(prefix="/api/cron", tags=["Cron"])


@router.get("/weekly-scan")
async def weekly_scan(
    session: DbSession,
    authorization: Annotated[str | None, Header()] = None,
):
    """Rescan every paid user's sites and email the weekly summaries."""
    if not verify_bearer_secret(authorization, get_settings().CRON_SECRET):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return await run_weekly_scan(session)
