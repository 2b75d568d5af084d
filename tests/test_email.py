from datetime import datetime

import pytest
import resend

from accessguard.services import email_service
from accessguard.services.email_service import (
    SiteSummary,
    render,
    send_weekly_summary_email,
    send_welcome_email,
)


@pytest.fixture
def outbox(monkeypatch, settings):
    sent = []

    def fake_send(params):
        sent.append(params)
        return {"id": f"email_{len(sent)}"}

    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return sent


def test_weekly_summary_template():
    html = render(
        "weekly_summary.html",
        scan_date="Monday, January 05, 2026",
        sites=[
            SiteSummary("Shop", "https://shop.example.com", 92, 3, 80),
            SiteSummary("Blog", "https://blog.example.com", 65, 12, 70),
            SiteSummary("Docs <beta>", "https://docs.example.com", None, 0, 88),
        ],
    )

    assert "Monday, January 05, 2026" in html
    assert "+12" in html
    assert "-5" in html
    assert "Scan failed" in html
    assert "Docs &lt;beta&gt;" in html
    assert "AccessGuard" in html


@pytest.mark.asyncio
async def test_welcome_email_sent(outbox, settings):
    sent = await send_welcome_email("new@example.com", "pro", datetime(2026, 2, 1))

    assert sent
    [message] = outbox
    assert message["to"] == ["new@example.com"]
    assert message["from"] == settings.EMAIL_FROM
    assert message["subject"] == "Welcome to AccessGuard Pro!"
    assert "February 1, 2026" in message["html"]
    assert "14-day free trial" in message["html"]


@pytest.mark.asyncio
async def test_welcome_email_with_claim_link(outbox):
    claim_url = "https://accessguard.example/register?claim_token=abc"

    assert await send_welcome_email("new@example.com", "pro", None, claim_url)
    html = outbox[0]["html"]
    assert "Set Your Password" in html
    assert claim_url in html


@pytest.mark.asyncio
async def test_welcome_email_without_api_key_is_not_fatal(monkeypatch, settings):
    monkeypatch.setattr(settings, "RESEND_API_KEY", None)

    assert await send_welcome_email("new@example.com", "pro", None) is False


@pytest.mark.asyncio
async def test_welcome_email_unknown_plan(outbox):
    assert await send_welcome_email("new@example.com", "enterprise", None) is False
    assert outbox == []


@pytest.mark.asyncio
async def test_weekly_summary_sent(outbox):
    sites = [SiteSummary("example.com", "https://example.com", 88, 4, None)]

    assert await send_weekly_summary_email("pro@example.com", sites, "Monday, January 05, 2026")
    assert outbox[0]["subject"] == "Your weekly accessibility report (Monday, January 05, 2026)"


@pytest.mark.asyncio
async def test_delivery_failure_is_logged(monkeypatch, settings, caplog):
    def failing_send(params):
        raise RuntimeError("Service unavailable")

    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(resend.Emails, "send", failing_send)

    assert await send_weekly_summary_email("pro@example.com", [], "today") is False
    assert "pro@example.com" in caplog.text


def test_templates_dir_exists():
    assert (email_service.TEMPLATES_DIR / "base.html").is_file()
