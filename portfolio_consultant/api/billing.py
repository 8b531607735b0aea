from __future__ import annotations

import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.core.config import Settings, get_settings
from portfolio_consultant.core.logging import log_with_correlation
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import User
from portfolio_consultant.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    SubscriptionChange,
    SubscriptionSummary,
    WebhookAck,
)
from portfolio_consultant.services import billing as billing_service
from portfolio_consultant.services.system_events import record_system_event

# ruff: noqa: B008  # FastAPI dependency injection pattern

logger = logging.getLogger(__name__)

router = APIRouter()


def _billing_error(exc: Exception) -> HTTPException:
    if isinstance(exc, billing_service.BillingNotConfiguredError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(exc, billing_service.NoSubscriptionError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, stripe.StripeError):
        message = exc.user_message or "Payment provider error."
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


_BILLING_ERRORS = (
    billing_service.BillingNotConfiguredError,
    billing_service.NoSubscriptionError,
    stripe.StripeError,
    ValueError,
)


@router.post("/create-checkout-session", response_model=CheckoutResponse)
def create_checkout_session(
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: User = Depends(get_current_user),
) -> CheckoutResponse:
    try:
        session_id, url = billing_service.create_checkout_session(
            db,
            settings,
            user,
            tier=payload.tier,
            price_id=payload.price_id,
            coupon_code=payload.coupon_code,
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
        )
    except _BILLING_ERRORS as exc:
        raise _billing_error(exc) from exc
    return CheckoutResponse(session_id=session_id, url=url)


@router.get("/subscription", response_model=Optional[SubscriptionSummary])
def read_subscription(
    settings: Settings = Depends(get_settings),
    user: User = Depends(get_current_user),
) -> Optional[SubscriptionSummary]:
    try:
        summary = billing_service.get_subscription_summary(settings, user)
    except _BILLING_ERRORS as exc:
        raise _billing_error(exc) from exc
    return SubscriptionSummary(**summary) if summary is not None else None


@router.patch("/subscription", response_model=SubscriptionSummary)
def change_subscription(
    payload: SubscriptionChange,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: User = Depends(get_current_user),
) -> SubscriptionSummary:
    try:
        summary = billing_service.change_subscription_tier(db, settings, user, payload.tier)
    except _BILLING_ERRORS as exc:
        raise _billing_error(exc) from exc
    return SubscriptionSummary(**summary)


@router.post("/subscription/cancel", response_model=SubscriptionSummary)
def cancel_subscription(
    settings: Settings = Depends(get_settings),
    user: User = Depends(get_current_user),
) -> SubscriptionSummary:
    """Cancel at the end of the current billing period."""

    try:
        summary = billing_service.set_cancel_at_period_end(settings, user, True)
    except _BILLING_ERRORS as exc:
        raise _billing_error(exc) from exc
    return SubscriptionSummary(**summary)


@router.post("/subscription/reactivate", response_model=SubscriptionSummary)
def reactivate_subscription(
    settings: Settings = Depends(get_settings),
    user: User = Depends(get_current_user),
) -> SubscriptionSummary:
    try:
        summary = billing_service.set_cancel_at_period_end(settings, user, False)
    except _BILLING_ERRORS as exc:
        raise _billing_error(exc) from exc
    return SubscriptionSummary(**summary)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> WebhookAck:
    """Receive Stripe events and mirror subscription state onto members."""

    correlation_id = getattr(request.state, "correlation_id", None)
    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe-Signature header.",
        )

    payload = await request.body()
    try:
        event = billing_service.parse_webhook_event(settings, payload, stripe_signature)
    except billing_service.BillingNotConfiguredError as exc:
        raise _billing_error(exc) from exc
    except (stripe.SignatureVerificationError, ValueError) as exc:
        log_with_correlation(
            logger,
            request,
            logging.WARNING,
            "Rejected Stripe webhook",
            error=str(exc),
        )
        await run_in_threadpool(
            record_system_event,
            db,
            level="WARNING",
            category="billing",
            message="Stripe webhook rejected: invalid signature or payload",
            correlation_id=correlation_id,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook error: {exc}",
        ) from exc

    applied = await run_in_threadpool(
        billing_service.handle_webhook_event,
        db,
        settings,
        event,
        correlation_id=correlation_id,
    )
    return WebhookAck(received=True, duplicate=not applied, type=event["type"])


__all__ = ["router"]
