from datetime import datetime

import pytest
from sqlalchemy import select

from accessguard.api.auth import CLAIM_REQUIRED_MESSAGE
from accessguard.core.security import create_access_token, create_claim_token
from accessguard.models import PlanType, Subscription, User
from conftest import TEST_PASSWORD, auth_headers, create_user


def registration(email="newuser@example.com", password="SecurePass1", confirm_password=None, **extra):
    return {
        "email": email,
        "password": password,
        "confirm_password": confirm_password or password,
        **extra,
    }


@pytest.mark.asyncio
async def test_register(client):
    response = await client.post(
        "/api/auth/register",
        json=registration(full_name="New User"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "newuser@example.com"
    assert data["full_name"] == "New User"
    assert data["plan"] == "free"
    assert data["role"] == "user"
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email(client, free_user):
    response = await client.post(
        "/api/auth/register",
        json=registration(email="Free@Example.com"),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_register_claims_checkout_account(client, db_session):
    subscriber = await create_user(
        db_session,
        email="subscriber@example.com",
        plan=PlanType.PRO,
        password=None,
        stripe_customer_id="cus_sub",
    )

    response = await client.post(
        "/api/auth/register",
        json=registration(
            email="subscriber@example.com",
            claim_token=create_claim_token(subscriber.id),
        ),
    )
    assert response.status_code == 201
    assert response.json()["plan"] == "pro"

    users = (await db_session.execute(select(User))).scalars().all()
    assert len(users) == 1

    login = await client.post(
        "/api/auth/login",
        json={"email": "subscriber@example.com", "password": "SecurePass1"},
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_register_checkout_account_needs_its_claim_token(client, db_session):
    subscriber = await create_user(
        db_session,
        email="subscriber@example.com",
        plan=PlanType.PRO,
        password=None,
        stripe_customer_id="cus_sub",
    )
    other = await create_user(db_session, email="other@example.com")

    for extra in (
        {},
        {"claim_token": "not-a-token"},
        {"claim_token": create_claim_token(other.id)},
        {"claim_token": create_access_token(subscriber.id)},
    ):
        response = await client.post(
            "/api/auth/register",
            json=registration(email="subscriber@example.com", **extra),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == CLAIM_REQUIRED_MESSAGE

    login = await client.post(
        "/api/auth/login",
        json={"email": "subscriber@example.com", "password": "SecurePass1"},
    )
    assert login.status_code == 401

    db_session.expire_all()
    assert (await db_session.get(User, subscriber.id)).hashed_password is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        registration(password="short1", confirm_password="short1"),
        registration(password="allletters"),
        registration(password="12345678"),
        registration(confirm_password="Different1"),
        registration(email="not-an-email"),
    ],
)
async def test_register_validation(client, payload):
    response = await client.post("/api/auth/register", json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login(client, free_user):
    response = await client.post(
        "/api/auth/login",
        json={"email": "free@example.com", "password": TEST_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "free@example.com"
    assert data["user"]["last_login_at"] is not None

    me = await client.get(
        "/api/auth/me",
        headers={"Authorization": f"Bearer {data['access_token']}"},
    )
    assert me.json()["id"] == free_user.id


@pytest.mark.asyncio
async def test_login_wrong_password(client, free_user):
    response = await client.post(
        "/api/auth/login",
        json={"email": "free@example.com", "password": "WrongPass1"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_passwordless_account(client, db_session):
    await create_user(db_session, email="nopass@example.com", password=None)

    response = await client.post(
        "/api/auth/login",
        json={"email": "nopass@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_account(client, db_session, free_user):
    free_user.is_active = False
    await db_session.commit()

    response = await client.post(
        "/api/auth/login",
        json={"email": "free@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_me_requires_valid_token(client):
    assert (await client.get("/api/auth/me")).status_code == 401

    response = await client.get(
        "/api/auth/me",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_update_me(client, free_user):
    response = await client.patch(
        "/api/auth/me",
        json={"full_name": "Renamed"},
        headers=auth_headers(free_user),
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Renamed"


@pytest.mark.asyncio
async def test_logout(client):
    response = await client.post("/api/auth/logout")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_me_includes_plan_and_subscription(client, db_session, pro_user, free_user):
    db_session.add(
        Subscription(
            user_id=pro_user.id,
            stripe_subscription_id="sub_me",
            status="trialing",
            plan=PlanType.PRO,
            trial_end=datetime(2026, 2, 1),
        ),
    )
    await db_session.commit()

    response = await client.get("/api/auth/me", headers=auth_headers(pro_user))
    profile = response.json()
    assert profile["plan"] == "pro"
    assert profile["site_limit"] == 3
    assert profile["has_billing_account"] is True
    assert profile["subscription"]["status"] == "trialing"
    assert profile["subscription"]["trial_end"] == "2026-02-01T00:00:00"

    response = await client.get("/api/auth/me", headers=auth_headers(free_user))
    profile = response.json()
    assert profile["site_limit"] == 0
    assert profile["has_billing_account"] is False
    assert profile["subscription"] is None
