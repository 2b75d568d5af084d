"""Stripe checkout, customer portal and webhook handling."""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from accessguard.config import get_settings
from accessguard.core.plans import get_plans, plan_for_price_id
from accessguard.core.security import create_claim_token
from accessguard.models.user import PlanType, SubscriptionStatus, User
from accessguard.services import user_service
from accessguard.services.email_service import send_welcome_email

logger = logging.getLogger(__name__)


class BillingError(RuntimeError):
    """Stripe is not configured or a Stripe call failed."""


class InvalidPlanError(ValueError):
    """Requested plan does not exist."""


class WebhookSignatureError(ValueError):
    """Webhook payload is not signed by Stripe."""


def _configure_stripe() -> None:
    secret_key = get_settings().STRIPE_SECRET_KEY
    if not secret_key:
        raise BillingError("STRIPE_SECRET_KEY environment variable is not set")
    stripe.api_key = secret_key


def _to_datetime(timestamp: int | None) -> datetime | None:
    """Unix seconds to naive UTC."""
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


def _first_item(subscription: dict[str, Any]) -> dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def subscription_periods(subscription: dict[str, Any]) -> dict[str, datetime | None]:
    """Billing period of a subscription.

    Newer Stripe API versions moved the period onto the subscription items.
    """
    item = _first_item(subscription)
    start = subscription.get("current_period_start") or item.get("current_period_start")
    end = subscription.get("current_period_end") or item.get("current_period_end")
    return {
        "current_period_start": _to_datetime(start),
        "current_period_end": _to_datetime(end),
    }


def subscription_plan(subscription: dict[str, Any]) -> PlanType | None:
    """Plan sold by the subscription's first price, else its metadata."""
    price = _first_item(subscription).get("price") or {}
    plan = plan_for_price_id(price.get("id"))
    if plan is not None:
        return plan

    metadata_plan = (subscription.get("metadata") or {}).get("plan")
    if metadata_plan in get_plans():
        return PlanType(metadata_plan)
    return None


def invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    """Subscription an invoice belongs to, across API versions."""
    subscription_id = invoice.get("subscription")
    if subscription_id:
        return subscription_id

    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


async def create_checkout_session(plan: str, user: User | None = None) -> str:
    """Start a subscription checkout and return the hosted page URL."""
    plan_info = get_plans().get(plan)
    if plan_info is None:
        raise InvalidPlanError("Invalid plan. Must be 'pro' or 'agency'.")
    if not plan_info.price_id:
        raise BillingError(f"Price ID not configured for plan: {plan}")

    _configure_stripe()
    settings = get_settings()

    params: dict[str, Any] = {
        "mode": "subscription",
        "payment_method_types": ["card"],
        "line_items": [{"price": plan_info.price_id, "quantity": 1}],
        "subscription_data": {
            "trial_period_days": plan_info.trial_days,
            "metadata": {"plan": plan},
        },
        "success_url": f"{settings.BASE_URL}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{settings.BASE_URL}/checkout/cancel",
        "metadata": {"plan": plan},
    }

    if user is not None:
        if user.stripe_customer_id:
            params["customer"] = user.stripe_customer_id
        else:
            params["customer_email"] = user.email

    try:
        session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
    except stripe.StripeError as e:
        raise BillingError(f"Failed to create checkout session: {e}") from e

    logger.info("Checkout session created for plan %s", plan)
    return session.url


async def create_portal_session(customer_id: str) -> str:
    """Customer portal session URL for managing a subscription."""
    _configure_stripe()
    try:
        session = await asyncio.to_thread(
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=get_settings().BASE_URL,
        )
    except stripe.StripeError as e:
        raise BillingError(f"Failed to create portal session: {e}") from e
    return session.url


def verify_webhook(payload: bytes, signature: str) -> dict[str, Any]:
    """Check the Stripe-Signature header and return the event as a dict."""
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    if not secret:
        raise BillingError("STRIPE_WEBHOOK_SECRET environment variable is not set")

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise WebhookSignatureError("Webhook payload is not valid UTF-8") from e

    try:
        stripe.WebhookSignature.verify_header(text, signature, secret)
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(f"Webhook signature verification failed: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise WebhookSignatureError("Webhook payload is not valid JSON") from e


async def retrieve_subscription(subscription_id: str) -> dict[str, Any]:
    """Fetch a subscription from Stripe as plain data."""
    _configure_stripe()
    subscription = await asyncio.to_thread(stripe.Subscription.retrieve, subscription_id)
    return json.loads(str(subscription))


async def handle_checkout_completed(session: AsyncSession, checkout: dict[str, Any]) -> None:
    customer_id = checkout.get("customer")
    subscription_id = checkout.get("subscription")
    email = (checkout.get("customer_details") or {}).get("email") or checkout.get("customer_email")
    plan = (checkout.get("metadata") or {}).get("plan")

    if not email or plan not in get_plans():
        logger.warning("Missing email or plan in checkout session %s", checkout.get("id"))
        return
    if not subscription_id:
        logger.warning("Checkout session %s has no subscription", checkout.get("id"))
        return

    user = await user_service.get_or_create_user(session, email, customer_id)
    subscription = await retrieve_subscription(subscription_id)

    trial_end = _to_datetime(subscription.get("trial_end"))
    await user_service.create_subscription(
        session,
        user.id,
        stripe_subscription_id=subscription["id"],
        status=subscription.get("status", SubscriptionStatus.ACTIVE.value),
        plan=PlanType(plan),
        trial_start=_to_datetime(subscription.get("trial_start")),
        trial_end=trial_end,
        **subscription_periods(subscription),
    )

    claim_url = None
    if not user.hashed_password:
        token = create_claim_token(user.id)
        claim_url = f"{get_settings().BASE_URL}/register?claim_token={token}"

    logger.info("User %s subscribed to %s", email, plan)
    await send_welcome_email(user.email, plan, trial_end, claim_url)


async def handle_subscription_updated(session: AsyncSession, subscription: dict[str, Any]) -> None:
    # Trial dates are only written when the event carries them
    trial_dates = {
        field: _to_datetime(subscription[field])
        for field in ("trial_start", "trial_end")
        if subscription.get(field)
    }
    try:
        await user_service.update_subscription(
            session,
            subscription["id"],
            status=subscription.get("status"),
            plan=subscription_plan(subscription),
            **trial_dates,
            cancel_at=_to_datetime(subscription.get("cancel_at")),
            canceled_at=_to_datetime(subscription.get("canceled_at")),
            **subscription_periods(subscription),
        )
    except LookupError:
        logger.warning("Update for unknown subscription %s ignored", subscription["id"])
        return

    logger.info("Subscription %s updated: %s", subscription["id"], subscription.get("status"))


async def handle_subscription_deleted(session: AsyncSession, subscription: dict[str, Any]) -> None:
    try:
        record = await user_service.update_subscription(
            session,
            subscription["id"],
            status=SubscriptionStatus.CANCELED.value,
            canceled_at=datetime.utcnow(),
        )
    except LookupError:
        logger.warning("Deletion of unknown subscription %s ignored", subscription["id"])
        return

    await user_service.set_user_plan(session, record.user_id, PlanType.FREE)
    logger.info("Subscription %s canceled, user %s downgraded to free", subscription["id"], record.user_id)


async def handle_payment_succeeded(session: AsyncSession, invoice: dict[str, Any]) -> None:
    subscription_id = invoice_subscription_id(invoice)
    if not subscription_id:
        return

    subscription = await retrieve_subscription(subscription_id)
    try:
        await user_service.update_subscription(
            session,
            subscription_id,
            status=subscription.get("status"),
            **subscription_periods(subscription),
        )
    except LookupError:
        logger.warning("Payment for unknown subscription %s ignored", subscription_id)


async def handle_payment_failed(session: AsyncSession, invoice: dict[str, Any]) -> None:
    subscription_id = invoice_subscription_id(invoice)
    if not subscription_id:
        return

    subscription = await retrieve_subscription(subscription_id)
    try:
        await user_service.update_subscription(
            session,
            subscription_id,
            status=subscription.get("status"),
        )
    except LookupError:
        logger.warning("Failed payment for unknown subscription %s ignored", subscription_id)

    customer_id = invoice.get("customer")
    user = None
    if customer_id:
        user = await user_service.get_user_by_stripe_customer_id(session, customer_id)
    logger.error(
        "Payment failed for user %s (subscription %s)",
        user.email if user else customer_id,
        subscription_id,
    )


EVENT_HANDLERS = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_succeeded": handle_payment_succeeded,
    "invoice.payment_failed": handle_payment_failed,
}


async def handle_event(session: AsyncSession, event: dict[str, Any]) -> bool:
    """Apply a verified webhook event. Returns False for unhandled types."""
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled event type: %s", event_type)
        return False

    await handler(session, event["data"]["object"])
    return True
