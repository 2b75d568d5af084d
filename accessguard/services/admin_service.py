"""Platform-wide figures for the admin API."""
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.core.plans import PLAN_PRICES
from accessguard.models.scan import ScanLog
from accessguard.models.user import PlanType, Subscription, SubscriptionStatus, User
from accessguard.schemas.admin import ActivityEvent, AdminStats, AdminUserResponse

STATUS_LABELS = {
    SubscriptionStatus.TRIALING.value: "started trial",
    SubscriptionStatus.ACTIVE.value: "subscribed",
    SubscriptionStatus.CANCELED.value: "canceled",
}


async def _count(session: AsyncSession, query) -> int:
    return (await session.execute(query)).scalar() or 0


async def get_admin_stats(session: AsyncSession) -> AdminStats:
    """User, subscription and scan totals plus monthly recurring revenue."""
    now = datetime.utcnow()
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    # Weeks start on Monday
    start_of_week = start_of_today - timedelta(days=start_of_today.weekday())
    start_of_month = start_of_today.replace(day=1)

    total_users = await _count(session, select(func.count(User.id)))

    active_plans = (
        await session.execute(
            select(Subscription.plan).where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
            ),
        )
    ).scalars().all()
    mrr = sum(PLAN_PRICES.get(plan.value, PLAN_PRICES[PlanType.PRO.value]) for plan in active_plans)

    trial_users = await _count(
        session,
        select(func.count(Subscription.id)).where(
            Subscription.status == SubscriptionStatus.TRIALING.value,
        ),
    )

    scan_count = select(func.count(ScanLog.id))
    total_scans = await _count(session, scan_count)
    scans_today = await _count(session, scan_count.where(ScanLog.created_at >= start_of_today))
    scans_this_week = await _count(session, scan_count.where(ScanLog.created_at >= start_of_week))
    scans_this_month = await _count(session, scan_count.where(ScanLog.created_at >= start_of_month))

    average = (
        await session.execute(
            select(func.avg(ScanLog.score)).where(ScanLog.score.is_not(None)),
        )
    ).scalar()

    return AdminStats(
        total_users=total_users,
        paid_users=len(active_plans),
        trial_users=trial_users,
        total_scans=total_scans,
        scans_today=scans_today,
        scans_this_week=scans_this_week,
        scans_this_month=scans_this_month,
        average_score=int(float(average) + 0.5) if average is not None else None,
        mrr=mrr,
    )


async def get_all_users(
    session: AsyncSession,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[AdminUserResponse], int]:
    """Users newest first, each with their scan count."""
    total = await _count(session, select(func.count(User.id)))

    scan_counts = (
        select(ScanLog.user_id, func.count(ScanLog.id).label("scan_count"))
        .group_by(ScanLog.user_id)
        .subquery()
    )
    result = await session.execute(
        select(User, func.coalesce(scan_counts.c.scan_count, 0))
        .outerjoin(scan_counts, scan_counts.c.user_id == User.id)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(offset)
        .limit(limit),
    )

    users = [
        AdminUserResponse(
            id=user.id,
            email=user.email,
            plan=user.plan,
            stripe_customer_id=user.stripe_customer_id,
            created_at=user.created_at,
            scan_count=scan_count,
        )
        for user, scan_count in result.all()
    ]
    return users, total


async def get_recent_activity(session: AsyncSession, limit: int = 15) -> list[ActivityEvent]:
    """Signups, scans and subscription changes merged into one feed."""
    events: list[ActivityEvent] = []

    users = await session.execute(
        select(User.email, User.created_at).order_by(User.created_at.desc()).limit(limit),
    )
    for email, created_at in users.all():
        events.append(
            ActivityEvent(type="signup", description=f"{email} signed up", timestamp=created_at),
        )

    scans = await session.execute(
        select(ScanLog.url, ScanLog.score, ScanLog.created_at)
        .order_by(ScanLog.created_at.desc())
        .limit(limit),
    )
    for url, score, created_at in scans.all():
        score_text = f", scored {score}%" if score is not None else ""
        events.append(
            ActivityEvent(type="scan", description=f"Scan: {url}{score_text}", timestamp=created_at),
        )

    subscriptions = await session.execute(
        select(Subscription.plan, Subscription.status, Subscription.created_at, Subscription.updated_at)
        .order_by(Subscription.created_at.desc())
        .limit(limit),
    )
    for plan, sub_status, created_at, updated_at in subscriptions.all():
        label = "Agency" if plan == PlanType.AGENCY else "Pro"
        events.append(
            ActivityEvent(
                type="subscription",
                description=f"{label} plan: {STATUS_LABELS.get(sub_status, sub_status)}",
                timestamp=updated_at or created_at,
            ),
        )

    events.sort(key=lambda event: event.timestamp, reverse=True)
    return events[:limit]
