"""
Test configuration and fixtures for the AccessGuard API.

A throwaway SQLite database is selected through the environment before any
application module is imported; tables are recreated for every test.
"""

import os
import tempfile

_db_fd, test_db_path = tempfile.mkstemp(suffix=".db")
os.close(_db_fd)

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_PRO_PRICE_ID"] = "price_pro_test"
os.environ["STRIPE_AGENCY_PRICE_ID"] = "price_agency_test"
os.environ["CRON_SECRET"] = "cron-test-secret"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("ALLOW_PRIVATE_URLS", None)

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from accessguard.config import get_settings
from accessguard.core.security import create_access_token, get_password_hash
from accessguard.models import Base, PlanType, ScanLog, Site, User, UserRole
from accessguard.schemas.scan import ScanResult, Violation, ViolationNode
from accessguard.utils.db import async_session_maker, engine

TEST_PASSWORD = "TestPass123"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
async def setup_db():
    """Fresh tables for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(setup_db):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def client(setup_db):
    """HTTP client bound to the ASGI app."""
    from accessguard.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_user(
    session,
    email: str = "test@example.com",
    plan: PlanType = PlanType.FREE,
    password: str | None = TEST_PASSWORD,
    role: UserRole = UserRole.USER,
    stripe_customer_id: str | None = None,
) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password) if password else None,
        plan=plan,
        role=role,
        is_active=True,
        stripe_customer_id=stripe_customer_id,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}


@pytest.fixture
async def free_user(db_session):
    return await create_user(db_session, email="free@example.com")


@pytest.fixture
async def pro_user(db_session):
    return await create_user(
        db_session,
        email="pro@example.com",
        plan=PlanType.PRO,
        stripe_customer_id="cus_pro",
    )


@pytest.fixture
async def admin_user(db_session):
    return await create_user(db_session, email="admin@example.com")


def make_scan_result(url: str = "https://example.com", score: int = 80) -> ScanResult:
    """A scan result as the scanner would return it."""
    violation = Violation(
        id="image-alt",
        impact="critical",
        description="Ensures <img> elements have alternate text",
        help="Images must have alternate text",
        help_url="https://dequeuniversity.com/rules/axe/4.10/image-alt",
        tags=["wcag2a", "wcag111"],
        nodes=[
            ViolationNode(
                html='<img src="logo.png">',
                target=["img"],
                failure_summary="Element does not have an alt attribute",
                fix_suggestion="Add an alt attribute.",
            ),
        ],
    )
    return ScanResult(
        url=url,
        timestamp=datetime.utcnow(),
        violations=[violation],
        passes=40,
        incomplete=2,
        score=score,
        scan_duration=1234,
    )


async def add_scan_log(
    session,
    ip: str = "127.0.0.1",
    user_id: int | None = None,
    url: str = "https://example.com",
    score: int | None = 80,
    created_at: datetime | None = None,
    site_id: int | None = None,
) -> ScanLog:
    scan_log = ScanLog(
        user_id=user_id,
        ip_address=ip,
        url=url,
        score=score,
        violations_count=1,
        scan_duration_ms=1000,
        violations=[],
        passes=10,
        incomplete=0,
        site_id=site_id,
    )
    if created_at is not None:
        scan_log.created_at = created_at
    session.add(scan_log)
    await session.commit()
    return scan_log


async def add_site(session, user: User, url: str = "https://example.com", name: str | None = None) -> Site:
    site = Site(user_id=user.id, url=url, name=name)
    session.add(site)
    await session.commit()
    await session.refresh(site)
    return site
