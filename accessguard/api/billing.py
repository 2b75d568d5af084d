"""Billing API endpoints: plans, checkout, customer portal and Stripe webhooks."""
import logging

from fastapi import APIRouter, HTTPException, Request, status

from accessguard.core.plans import get_plans, get_site_limit
from accessguard.dependencies import CurrentUser, DbSession
from accessguard.schemas.billing import CheckoutRequest, PlanResponse, RedirectResponse
from accessguard.services import billing_service
from accessguard.services.billing_service import (
    BillingError,
    InvalidPlanError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Billing"])


@router.get("/billing/plans", response_model=list[PlanResponse])
async def list_plans():
    """List purchasable plans."""
    return [
        PlanResponse(
            key=plan.key,
            name=plan.name,
            price=plan.price,
            trial_days=plan.trial_days,
            site_limit=get_site_limit(plan.key),
            available=bool(plan.price_id),
        )
        for plan in get_plans().values()
    ]


@router.post("/checkout", response_model=RedirectResponse)
async def checkout(
    data: CheckoutRequest,
    user: CurrentUser = None,
):
    """Start a Stripe Checkout session with a free trial."""
    try:
        url = await billing_service.create_checkout_session(data.plan or "", user)
    except InvalidPlanError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BillingError as e:
        logger.error("Checkout error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session",
        )

    return RedirectResponse(url=url)


@router.post("/portal", response_model=RedirectResponse)
async def portal(
    user: CurrentUser = None,
):
    """Open the Stripe customer portal for the current user."""
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    if not user.stripe_customer_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No billing account found",
        )

    try:
        url = await billing_service.create_portal_session(user.stripe_customer_id)
    except BillingError as e:
        logger.error("Portal error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create portal session",
        )

    return RedirectResponse(url=url)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    session: DbSession,
):
    """Receive Stripe events; the raw body is needed for signature checks."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature header",
        )

    try:
        event = billing_service.verify_webhook(payload, signature)
    except WebhookSignatureError as e:
        logger.warning("Webhook rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")
    except BillingError as e:
        logger.error("Webhook misconfigured: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )

    try:
        await billing_service.handle_event(session, event)
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.exception("Webhook handler error for %s: %s", event.get("type"), e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        )

    return {"received": True}
