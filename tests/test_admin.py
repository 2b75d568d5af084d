from datetime import datetime, timedelta

import pytest

from accessguard.models import PlanType, Subscription, UserRole
from conftest import add_scan_log, auth_headers, create_user


async def seed_platform(db_session, pro_user, free_user):
    agency = await create_user(db_session, email="agency@example.com", plan=PlanType.AGENCY)
    trial = await create_user(db_session, email="trial@example.com", plan=PlanType.PRO)
    db_session.add_all(
        [
            Subscription(user_id=pro_user.id, stripe_subscription_id="sub_pro", status="active", plan=PlanType.PRO),
            Subscription(user_id=agency.id, stripe_subscription_id="sub_agency", status="active", plan=PlanType.AGENCY),
            Subscription(user_id=trial.id, stripe_subscription_id="sub_trial", status="trialing", plan=PlanType.PRO),
        ],
    )
    await db_session.commit()

    await add_scan_log(db_session, user_id=free_user.id, score=80)
    await add_scan_log(db_session, user_id=free_user.id, score=90)
    await add_scan_log(db_session, ip="203.0.113.5", score=61, created_at=datetime.utcnow() - timedelta(days=40))
    await add_scan_log(db_session, user_id=pro_user.id, score=None)


@pytest.mark.asyncio
async def test_admin_requires_admin(client, free_user):
    assert (await client.get("/api/admin/stats")).status_code == 401

    response = await client.get("/api/admin/stats", headers=auth_headers(free_user))
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
async def test_admin_by_role(client, db_session):
    staff = await create_user(db_session, email="staff@example.com", role=UserRole.ADMIN)

    response = await client.get("/api/admin/stats", headers=auth_headers(staff))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_admin_stats(client, db_session, admin_user, pro_user, free_user):
    await seed_platform(db_session, pro_user, free_user)

    response = await client.get("/api/admin/stats", headers=auth_headers(admin_user))

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_users"] == 5
    assert stats["paid_users"] == 2
    assert stats["trial_users"] == 1
    assert stats["mrr"] == 49 + 149
    assert stats["total_scans"] == 4
    assert stats["scans_today"] == 3
    assert stats["scans_this_month"] == 3
    assert stats["scans_this_week"] == 3
    assert stats["average_score"] == 77


@pytest.mark.asyncio
async def test_admin_users_with_scan_counts(client, db_session, admin_user, pro_user, free_user):
    await seed_platform(db_session, pro_user, free_user)

    response = await client.get("/api/admin/users?limit=10", headers=auth_headers(admin_user))

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 5
    counts = {user["email"]: user["scan_count"] for user in data["users"]}
    assert counts["free@example.com"] == 2
    assert counts["pro@example.com"] == 1
    assert counts["agency@example.com"] == 0
    assert data["users"][0]["email"] == "trial@example.com"

    page = await client.get("/api/admin/users?limit=2&offset=4", headers=auth_headers(admin_user))
    assert len(page.json()["users"]) == 1


@pytest.mark.asyncio
async def test_admin_activity_feed(client, db_session, admin_user, pro_user, free_user):
    await seed_platform(db_session, pro_user, free_user)

    response = await client.get("/api/admin/activity", headers=auth_headers(admin_user))

    assert response.status_code == 200
    events = response.json()
    assert len(events) <= 15
    assert {event["type"] for event in events} == {"signup", "scan", "subscription"}

    timestamps = [event["timestamp"] for event in events]
    assert timestamps == sorted(timestamps, reverse=True)

    descriptions = [event["description"] for event in events]
    assert "Agency plan: subscribed" in descriptions
    assert "Pro plan: started trial" in descriptions
    assert "Scan: https://example.com, scored 90%" in descriptions


@pytest.mark.asyncio
async def test_health_and_root(client):
    health = await client.get("/health")
    assert health.json()["status"] == "healthy"

    root = await client.get("/")
    assert root.json()["name"] == "AccessGuard"
