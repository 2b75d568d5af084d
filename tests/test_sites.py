from datetime import datetime, timedelta

import pytest

from accessguard.models import PlanType
from conftest import add_scan_log, add_site, auth_headers, create_user


@pytest.mark.asyncio
async def test_list_sites_reports_plan_and_limit(client, db_session, pro_user):
    await add_site(db_session, pro_user, url="https://example.com", name="Example")

    response = await client.get("/api/sites", headers=auth_headers(pro_user))

    assert response.status_code == 200
    data = response.json()
    assert data["plan"] == "pro"
    assert data["site_limit"] == 3
    assert [s["name"] for s in data["sites"]] == ["Example"]


@pytest.mark.asyncio
async def test_sites_require_auth(client):
    assert (await client.get("/api/sites")).status_code == 401
    assert (await client.post("/api/sites", json={"url": "example.com"})).status_code == 401


@pytest.mark.asyncio
async def test_free_plan_cannot_add_sites(client, free_user):
    response = await client.post(
        "/api/sites",
        json={"url": "example.com"},
        headers=auth_headers(free_user),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Site limit reached. Your free plan allows up to 0 sites."


@pytest.mark.asyncio
async def test_add_site_normalizes_url(client, pro_user):
    response = await client.post(
        "/api/sites",
        json={"url": "example.com", "name": "Marketing site"},
        headers=auth_headers(pro_user),
    )

    assert response.status_code == 201
    site = response.json()["site"]
    assert site["url"] == "https://example.com"
    assert site["name"] == "Marketing site"
    assert site["last_scan_score"] is None


@pytest.mark.asyncio
async def test_add_site_rejects_duplicates(client, db_session, pro_user):
    await add_site(db_session, pro_user, url="https://example.com")

    response = await client.post(
        "/api/sites",
        json={"url": "https://example.com"},
        headers=auth_headers(pro_user),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "This URL is already registered."


@pytest.mark.asyncio
async def test_pro_plan_site_limit(client, db_session, pro_user):
    for i in range(3):
        await add_site(db_session, pro_user, url=f"https://site{i}.example.com")

    response = await client.post(
        "/api/sites",
        json={"url": "https://site3.example.com"},
        headers=auth_headers(pro_user),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Site limit reached. Your pro plan allows up to 3 sites."


@pytest.mark.asyncio
async def test_agency_plan_allows_more_sites(client, db_session):
    agency = await create_user(db_session, email="agency@example.com", plan=PlanType.AGENCY)
    for i in range(3):
        await add_site(db_session, agency, url=f"https://site{i}.example.com")

    response = await client.post(
        "/api/sites",
        json={"url": "https://site3.example.com"},
        headers=auth_headers(agency),
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_add_site_rejects_invalid_url(client, pro_user):
    response = await client.post(
        "/api/sites",
        json={"url": "ftp://example.com"},
        headers=auth_headers(pro_user),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a valid URL"


@pytest.mark.asyncio
async def test_delete_site(client, db_session, pro_user):
    site = await add_site(db_session, pro_user)

    response = await client.request(
        "DELETE",
        "/api/sites",
        json={"site_id": site.id},
        headers=auth_headers(pro_user),
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    listing = await client.get("/api/sites", headers=auth_headers(pro_user))
    assert listing.json()["sites"] == []


@pytest.mark.asyncio
async def test_cannot_delete_another_users_site(client, db_session, pro_user):
    other = await create_user(db_session, email="other@example.com", plan=PlanType.PRO)
    site = await add_site(db_session, other)

    response = await client.request(
        "DELETE",
        "/api/sites",
        json={"site_id": site.id},
        headers=auth_headers(pro_user),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_stats(client, db_session, pro_user):
    first = await add_site(db_session, pro_user, url="https://a.example.com")
    second = await add_site(db_session, pro_user, url="https://b.example.com")
    await add_site(db_session, pro_user, url="https://c.example.com")
    first.last_scan_score = 90
    second.last_scan_score = 75
    await db_session.commit()

    await add_scan_log(db_session, user_id=pro_user.id)
    await add_scan_log(db_session, user_id=pro_user.id)
    start_of_month = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    await add_scan_log(db_session, user_id=pro_user.id, created_at=start_of_month - timedelta(days=1))

    response = await client.get("/api/dashboard/stats", headers=auth_headers(pro_user))

    assert response.status_code == 200
    assert response.json() == {
        "sites_count": 3,
        "scans_this_month": 2,
        "average_score": 83,
    }


@pytest.mark.asyncio
async def test_dashboard_stats_without_scores(client, free_user):
    response = await client.get("/api/dashboard/stats", headers=auth_headers(free_user))
    assert response.json() == {"sites_count": 0, "scans_this_month": 0, "average_score": None}
