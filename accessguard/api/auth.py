"""Authentication API endpoints."""
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.core.plans import get_site_limit
from accessguard.core.security import (
    claim_token_user_id,
    create_access_token,
    get_password_hash,
    verify_password,
)
from accessguard.dependencies import AuthUser, DbSession
from accessguard.models.user import PlanType, User, UserRole
from accessguard.schemas.user import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterRequest,
    SubscriptionResponse,
    UserResponse,
    UserUpdate,
)
from accessguard.services.user_service import get_active_subscription, get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

CLAIM_REQUIRED_MESSAGE = (
    "This email belongs to a subscription. Use the link in your welcome "
    "email to set your password."
)


async def build_profile(session: AsyncSession, user: User) -> ProfileResponse:
    subscription = await get_active_subscription(session, user.id)
    return ProfileResponse(
        **UserResponse.model_validate(user).model_dump(),
        site_limit=get_site_limit(user.plan),
        has_billing_account=bool(user.stripe_customer_id),
        subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    session: DbSession,
):
    """Register a new user account.

    A subscriber whose account was created by checkout claims it here by
    setting a password; their plan is kept. Claiming needs the token from
    the welcome email, which proves control of the address.
    """
    user = await get_user_by_email(session, data.email)

    if user is not None and user.hashed_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    if user is not None and claim_token_user_id(data.claim_token) != user.id:
        logger.warning("Rejected claim of %s without a valid claim token", user.email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=CLAIM_REQUIRED_MESSAGE,
        )

    if user is None:
        user = User(
            email=data.email.lower(),
            plan=PlanType.FREE,
            is_active=True,
            role=UserRole.USER,
        )
        session.add(user)

    user.hashed_password = get_password_hash(data.password)
    if data.full_name:
        user.full_name = data.full_name

    await session.commit()
    await session.refresh(user)

    logger.info("Registered user %s", user.email)
    return user


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    session: DbSession,
):
    """Authenticate user and return access token."""
    user = await get_user_by_email(session, data.email)

    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    user.last_login_at = datetime.utcnow()
    await session.commit()

    return LoginResponse(
        access_token=create_access_token(subject=user.id),
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    session: DbSession,
    user: AuthUser,
):
    """Current user with plan allowance and subscription state."""
    return await build_profile(session, user)


@router.patch("/me", response_model=ProfileResponse)
async def update_me(
    data: UserUpdate,
    session: DbSession,
    user: AuthUser,
):
    """Update current user profile."""
    if data.full_name is not None:
        user.full_name = data.full_name

    await session.commit()
    await session.refresh(user)

    return await build_profile(session, user)


@router.post("/logout")
async def logout():
    """Logout user (client-side token deletion).

    Tokens are stateless, so the client discards its token.
    """
    return {"message": "Successfully logged out"}
