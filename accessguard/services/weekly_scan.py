"""Weekly monitoring: rescan every paid user's sites and email a summary."""
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.models.scan import Site
from accessguard.models.user import PAID_PLANS, User
from accessguard.schemas.scan import ScanResult
from accessguard.services.email_service import SiteSummary, send_weekly_summary_email
from accessguard.services.scan_service import log_scan
from accessguard.services.scanner import ScanError, scan_url
from accessguard.utils.validators import InvalidURLError, display_name

logger = logging.getLogger(__name__)

CRON_IP = "cron"

ScanFunc = Callable[[str], Awaitable[ScanResult]]
SummaryFunc = Callable[[str, list[SiteSummary], str], Awaitable[bool]]


async def run_weekly_scan(
    session: AsyncSession,
    scan: ScanFunc = scan_url,
    send_summary: SummaryFunc = send_weekly_summary_email,
) -> dict:
    """Scan every site of every pro and agency user, one at a time.

    A failing site is reported in the summary and counted as an error; the
    run moves on to the next site. Users and sites are read as plain rows so
    a rollback inside `log_scan` cannot expire them mid-run.
    """
    result = await session.execute(
        select(User.id, User.email).where(User.plan.in_(PAID_PLANS)).order_by(User.id),
    )
    users = result.all()

    if not users:
        return {"message": "No paid users to scan", "users": 0, "scanned": 0, "errors": 0}

    total_scans = 0
    total_errors = 0

    for user_id, email in users:
        sites_result = await session.execute(
            select(Site.url, Site.name, Site.last_scan_score)
            .where(Site.user_id == user_id)
            .order_by(Site.id),
        )
        sites = sites_result.all()
        if not sites:
            continue

        summaries: list[SiteSummary] = []

        for url, name, previous_score in sites:
            site_name = name or display_name(url)

            try:
                scan_result = await scan(url)
            except (ScanError, InvalidURLError) as e:
                logger.error("Cron scan failed for %s: %s", url, e)
                scan_result = None
            except Exception:
                logger.exception("Unexpected error scanning %s", url)
                scan_result = None

            if scan_result is None:
                summaries.append(
                    SiteSummary(
                        site_name=site_name,
                        url=url,
                        score=None,
                        violations_count=0,
                        previous_score=previous_score,
                    ),
                )
                total_errors += 1
                continue

            await log_scan(session, user_id, CRON_IP, scan_result, scan_result.scan_duration)
            summaries.append(
                SiteSummary(
                    site_name=site_name,
                    url=url,
                    score=scan_result.score,
                    violations_count=len(scan_result.violations),
                    previous_score=previous_score,
                ),
            )
            total_scans += 1

        await session.commit()

        scan_date = datetime.utcnow().strftime("%A, %B %d, %Y")
        await send_summary(email, summaries, scan_date)

    logger.info(
        "Weekly scan complete: %d users, %d scanned, %d errors",
        len(users),
        total_scans,
        total_errors,
    )
    return {
        "message": "Weekly scan complete",
        "users": len(users),
        "scanned": total_scans,
        "errors": total_errors,
    }
