import math
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from accessguard.core.rate_limiter import (
    RateLimitError,
    can_user_scan,
    get_client_ip,
    get_recent_scan_count,
    require_scan_allowance,
)
from conftest import add_scan_log


def make_request(headers=None, client=("198.51.100.7", 5000)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/scan",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_client_ip_prefers_forwarded_for():
    request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "203.0.113.9"})
    assert get_client_ip(request) == "203.0.113.5"


def test_client_ip_falls_back_to_real_ip_then_peer():
    assert get_client_ip(make_request({"X-Real-IP": "203.0.113.9"})) == "203.0.113.9"
    assert get_client_ip(make_request()) == "198.51.100.7"
    assert get_client_ip(make_request(client=None)) == "unknown"


@pytest.mark.asyncio
async def test_recent_scan_count_uses_window(db_session):
    await add_scan_log(db_session, ip="203.0.113.5")
    await add_scan_log(db_session, ip="203.0.113.5")
    await add_scan_log(db_session, ip="203.0.113.5", created_at=datetime.utcnow() - timedelta(hours=2))
    await add_scan_log(db_session, ip="203.0.113.6")

    assert await get_recent_scan_count(db_session, "203.0.113.5", 1) == 2
    assert await get_recent_scan_count(db_session, "203.0.113.5", 3) == 3


@pytest.mark.asyncio
async def test_free_tier_limit(db_session, free_user, settings):
    for _ in range(settings.FREE_SCANS_PER_WINDOW - 1):
        await add_scan_log(db_session, ip="203.0.113.5")
    assert await can_user_scan(db_session, "203.0.113.5", None)

    await add_scan_log(db_session, ip="203.0.113.5")
    assert not await can_user_scan(db_session, "203.0.113.5", None)
    assert not await can_user_scan(db_session, "203.0.113.5", free_user)


@pytest.mark.asyncio
async def test_paid_plans_are_unlimited(db_session, pro_user, settings):
    for _ in range(settings.FREE_SCANS_PER_WINDOW + 2):
        await add_scan_log(db_session, ip="203.0.113.5")

    assert await can_user_scan(db_session, "203.0.113.5", pro_user)


@pytest.mark.asyncio
async def test_count_failure_fails_closed(db_session, monkeypatch):
    async def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    assert await get_recent_scan_count(db_session, "203.0.113.5", 1) == math.inf
    assert not await can_user_scan(db_session, "203.0.113.5", None)


@pytest.mark.asyncio
async def test_require_scan_allowance_raises_with_retry_after(db_session, settings):
    for _ in range(settings.FREE_SCANS_PER_WINDOW):
        await add_scan_log(db_session, ip="203.0.113.5")

    with pytest.raises(RateLimitError) as exc_info:
        await require_scan_allowance(db_session, "203.0.113.5", None)

    assert exc_info.value.status_code == 429
    assert exc_info.value.detail == "Rate limit exceeded. Free tier allows 5 scans per hour."
    assert exc_info.value.headers == {"Retry-After": "3600"}
