"""Transactional email through Resend, rendered from Jinja2 templates."""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape

from accessguard.config import get_settings
from accessguard.core.plans import get_plans

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)


class EmailError(RuntimeError):
    """Email delivery is not configured or failed."""


@dataclass
class SiteSummary:
    """One line of the weekly report."""
    site_name: str
    url: str
    score: int | None
    violations_count: int
    previous_score: int | None

    @property
    def change(self) -> int | None:
        if self.score is None or self.previous_score is None:
            return None
        return self.score - self.previous_score


def _configure_resend() -> None:
    api_key = get_settings().RESEND_API_KEY
    if not api_key:
        raise EmailError("RESEND_API_KEY environment variable is not set")
    resend.api_key = api_key


def render(template_name: str, **context) -> str:
    settings = get_settings()
    context.setdefault("app_name", settings.APP_NAME)
    context.setdefault("base_url", settings.BASE_URL)
    context.setdefault("support_email", settings.SUPPORT_EMAIL)
    context.setdefault("year", datetime.utcnow().year)
    return templates.get_template(template_name).render(**context)


async def send_email(to: str, subject: str, html: str) -> str | None:
    """Send one message and return the provider's message id.

    Raises EmailError when Resend is not configured.
    """
    _configure_resend()
    params = {
        "from": get_settings().EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": html,
    }
    response = await asyncio.to_thread(resend.Emails.send, params)
    return response.get("id") if isinstance(response, dict) else None


async def send_welcome_email(
    to: str,
    plan: str,
    trial_end: datetime | None,
    claim_url: str | None = None,
) -> bool:
    """Welcome a new subscriber. Failures are logged, never raised.

    `claim_url` is the set-your-password link for accounts opened by checkout.
    """
    plan_info = get_plans().get(plan)
    if plan_info is None:
        logger.error("Cannot send welcome email for unknown plan %s", plan)
        return False

    subject = f"Welcome to {plan_info.name}!"
    html = render(
        "welcome.html",
        plan=plan_info,
        trial_end=trial_end.strftime("%B %d, %Y").replace(" 0", " ") if trial_end else None,
        claim_url=claim_url,
    )

    try:
        await send_email(to, subject, html)
    except Exception as e:
        logger.error("Error sending welcome email to %s: %s", to, e)
        return False

    logger.info("Welcome email sent to %s for %s", to, plan_info.name)
    return True


async def send_weekly_summary_email(
    to: str,
    sites: list[SiteSummary],
    scan_date: str,
) -> bool:
    """Weekly monitoring report. Failures are logged, never raised."""
    subject = f"Your weekly accessibility report ({scan_date})"
    html = render("weekly_summary.html", sites=sites, scan_date=scan_date)

    try:
        await send_email(to, subject, html)
    except Exception as e:
        logger.error("Failed to send weekly summary to %s: %s", to, e)
        return False

    logger.info("Weekly summary sent to %s (%d sites)", to, len(sites))
    return True
