"""User and subscription data access."""
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.models.user import PlanType, Subscription, SubscriptionStatus, User

logger = logging.getLogger(__name__)

# Fields update_subscription accepts besides status and plan
SUBSCRIPTION_DATE_FIELDS = (
    "current_period_start",
    "current_period_end",
    "trial_start",
    "trial_end",
    "cancel_at",
    "canceled_at",
)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Find a user by email address (case-insensitive)."""
    result = await session.execute(
        select(User).where(User.email == email.strip().lower()),
    )
    return result.scalar_one_or_none()


async def get_user_by_stripe_customer_id(
    session: AsyncSession,
    customer_id: str,
) -> User | None:
    """Find a user by their Stripe customer ID."""
    result = await session.execute(
        select(User).where(User.stripe_customer_id == customer_id),
    )
    return result.scalar_one_or_none()


async def get_or_create_user(
    session: AsyncSession,
    email: str,
    stripe_customer_id: str | None = None,
) -> User:
    """Find a user by email or create a free one.

    A differing Stripe customer ID replaces the stored one.
    """
    user = await get_user_by_email(session, email)

    if user is not None:
        if stripe_customer_id and user.stripe_customer_id != stripe_customer_id:
            user.stripe_customer_id = stripe_customer_id
            await session.flush()
        return user

    user = User(
        email=email.strip().lower(),
        stripe_customer_id=stripe_customer_id,
        plan=PlanType.FREE,
        is_active=True,
    )
    session.add(user)
    await session.flush()
    logger.info("Created user %s", user.email)
    return user


async def set_user_plan(session: AsyncSession, user_id: int, plan: PlanType) -> None:
    """Change a user's plan."""
    user = await session.get(User, user_id)
    if user is None:
        raise LookupError(f"User {user_id} not found")
    user.plan = plan
    user.updated_at = datetime.utcnow()
    await session.flush()


async def get_subscription_by_stripe_id(
    session: AsyncSession,
    stripe_subscription_id: str,
) -> Subscription | None:
    result = await session.execute(
        select(Subscription).where(
            Subscription.stripe_subscription_id == stripe_subscription_id,
        ),
    )
    return result.scalar_one_or_none()


async def create_subscription(
    session: AsyncSession,
    user_id: int,
    *,
    stripe_subscription_id: str,
    status: str,
    plan: PlanType,
    current_period_start: datetime | None = None,
    current_period_end: datetime | None = None,
    trial_start: datetime | None = None,
    trial_end: datetime | None = None,
) -> Subscription:
    """Record a new subscription and move the user onto its plan.

    Stripe retries webhooks, so a repeated subscription ID updates the
    existing row instead of inserting a duplicate.
    """
    subscription = await get_subscription_by_stripe_id(session, stripe_subscription_id)

    if subscription is None:
        subscription = Subscription(
            user_id=user_id,
            stripe_subscription_id=stripe_subscription_id,
        )
        session.add(subscription)

    subscription.status = status
    subscription.plan = plan
    subscription.current_period_start = current_period_start
    subscription.current_period_end = current_period_end
    subscription.trial_start = trial_start
    subscription.trial_end = trial_end
    await session.flush()

    await set_user_plan(session, user_id, plan)
    return subscription


async def update_subscription(
    session: AsyncSession,
    stripe_subscription_id: str,
    *,
    status: str | None = None,
    plan: PlanType | None = None,
    **dates: datetime | None,
) -> Subscription:
    """Partially update a subscription by its Stripe ID.

    Only the keyword arguments passed are written; pass a date as None to
    clear it. When a plan is given the owner's plan follows it.
    """
    unknown = set(dates) - set(SUBSCRIPTION_DATE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown subscription fields: {', '.join(sorted(unknown))}")

    subscription = await get_subscription_by_stripe_id(session, stripe_subscription_id)
    if subscription is None:
        raise LookupError(f"Subscription {stripe_subscription_id} not found")

    if status is not None:
        subscription.status = status
    if plan is not None:
        subscription.plan = plan
    for field, value in dates.items():
        setattr(subscription, field, value)
    subscription.updated_at = datetime.utcnow()
    await session.flush()

    if plan is not None:
        try:
            await set_user_plan(session, subscription.user_id, plan)
        except LookupError as e:
            logger.error("Error updating user plan: %s", e)

    return subscription


async def get_active_subscription(
    session: AsyncSession,
    user_id: int,
) -> Subscription | None:
    """Latest active or trialing subscription for a user."""
    result = await session.execute(
        select(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.status.in_(
                [SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value],
            ),
        )
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .limit(1),
    )
    return result.scalar_one_or_none()
