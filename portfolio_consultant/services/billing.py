from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Dict, Mapping, Optional, Tuple

import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio_consultant.core.config import Settings
from portfolio_consultant.core.tiers import BILLABLE_TIERS
from portfolio_consultant.models import StripeEvent, User
from portfolio_consultant.services.coupons import (
    check_coupon,
    get_coupon_by_code,
    redeem_coupon,
)
from portfolio_consultant.services.notifications import create_notification
from portfolio_consultant.services.system_events import record_system_event
from portfolio_consultant.services.users import get_user_by_stripe_customer, set_user_tier

logger = logging.getLogger(__name__)

# Subscription statuses that no longer entitle the member to a paid tier.
LAPSED_STATUSES = frozenset({"canceled", "unpaid", "incomplete_expired"})
ENTITLED_STATUSES = frozenset({"active", "trialing", "past_due"})

HANDLED_EVENT_TYPES = (
    "checkout.session.completed",
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "customer.subscription.trial_will_end",
    "invoice.paid",
    "invoice.payment_failed",
)


class BillingNotConfiguredError(RuntimeError):
    """Raised when Stripe credentials are missing."""


class NoSubscriptionError(LookupError):
    """Raised when the member has no Stripe subscription on file."""


def price_table(settings: Settings) -> Dict[str, str]:
    """Configured ``tier -> Stripe price id`` mapping."""

    table = {
        "paid": settings.stripe_paid_price_id,
        "premium": settings.stripe_premium_price_id,
        "mentorship": settings.stripe_mentorship_price_id,
    }
    return {tier: price for tier, price in table.items() if price}


def tier_for_price_id(settings: Settings, price_id: Optional[str]) -> str:
    if not price_id:
        return "free"
    for tier, configured in price_table(settings).items():
        if configured == price_id:
            return tier
    return "free"


def price_id_for_tier(settings: Settings, tier: str) -> str:
    if tier not in BILLABLE_TIERS:
        raise ValueError(f"Tier {tier!r} cannot be purchased.")
    price_id = price_table(settings).get(tier)
    if not price_id:
        raise BillingNotConfiguredError(f"No Stripe price configured for tier {tier!r}.")
    return price_id


def _api_key(settings: Settings) -> str:
    if not settings.stripe_secret_key:
        raise BillingNotConfiguredError(
            "Stripe is not configured. Set PC_STRIPE_SECRET_KEY to enable billing."
        )
    return settings.stripe_secret_key


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)


def _first_item(subscription: Mapping[str, Any]) -> Mapping[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _subscription_price_id(subscription: Mapping[str, Any]) -> Optional[str]:
    price = _first_item(subscription).get("price") or {}
    return price.get("id")


def get_or_create_customer(db: Session, settings: Settings, user: User) -> str:
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer = stripe.Customer.create(
        api_key=_api_key(settings),
        email=user.email,
        name=user.name,
        metadata={"userId": str(user.id)},
    )
    user.stripe_customer_id = customer["id"]
    db.add(user)
    db.commit()
    db.refresh(user)
    return user.stripe_customer_id


def create_checkout_session(
    db: Session,
    settings: Settings,
    user: User,
    *,
    tier: Optional[str] = None,
    price_id: Optional[str] = None,
    coupon_code: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> Tuple[str, Optional[str]]:
    """Start a subscription checkout; returns ``(session_id, url)``."""

    if price_id is None:
        price_id = price_id_for_tier(settings, tier or "")
    elif tier_for_price_id(settings, price_id) == "free":
        raise ValueError("Unknown Stripe price id.")

    coupon = None
    if coupon_code:
        coupon = get_coupon_by_code(db, coupon_code)
        valid, reason = check_coupon(coupon)
        if not valid:
            raise ValueError(reason)

    api_key = _api_key(settings)
    customer_id = get_or_create_customer(db, settings, user)
    metadata = {"userId": str(user.id)}
    params: Dict[str, Any] = {
        "mode": "subscription",
        "customer": customer_id,
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": success_url
        or f"{settings.frontend_url}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": cancel_url or f"{settings.frontend_url}/pricing",
        "metadata": metadata,
        "subscription_data": {"metadata": metadata},
    }
    if coupon is not None:
        # Coupon codes are mirrored as Stripe coupon ids.
        params["discounts"] = [{"coupon": coupon.code}]
        metadata["couponCode"] = coupon.code

    session = stripe.checkout.Session.create(api_key=api_key, **params)

    if coupon is not None:
        redeem_coupon(db, coupon)

    logger.info(
        "Checkout session created",
        extra={
            "extra": {
                "user_id": user.id,
                "price_id": price_id,
                "session_id": session["id"],
                "coupon": coupon.code if coupon is not None else None,
            }
        },
    )
    return session["id"], session.get("url")


def _retrieve_subscription(settings: Settings, user: User):
    if not user.stripe_subscription_id:
        raise NoSubscriptionError("No active subscription.")
    return stripe.Subscription.retrieve(
        user.stripe_subscription_id, api_key=_api_key(settings)
    )


def summarize_subscription(settings: Settings, subscription: Mapping[str, Any]) -> Dict[str, Any]:
    period_end = subscription.get("current_period_end")
    if period_end is None:
        period_end = _first_item(subscription).get("current_period_end")
    return {
        "id": subscription["id"],
        "status": subscription.get("status") or "unknown",
        "tier": tier_for_price_id(settings, _subscription_price_id(subscription)),
        "current_period_end": _from_timestamp(period_end),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
    }


def get_subscription_summary(settings: Settings, user: User) -> Optional[Dict[str, Any]]:
    if not user.stripe_subscription_id:
        return None
    return summarize_subscription(settings, _retrieve_subscription(settings, user))


def change_subscription_tier(
    db: Session, settings: Settings, user: User, tier: str
) -> Dict[str, Any]:
    new_price = price_id_for_tier(settings, tier)
    subscription = _retrieve_subscription(settings, user)
    item = _first_item(subscription)
    updated = stripe.Subscription.modify(
        subscription["id"],
        api_key=_api_key(settings),
        items=[{"id": item.get("id"), "price": new_price}],
        proration_behavior="create_prorations",
    )
    set_user_tier(db, user, tier, source="subscription_change")
    return summarize_subscription(settings, updated)


def set_cancel_at_period_end(
    settings: Settings, user: User, cancel: bool
) -> Dict[str, Any]:
    subscription = _retrieve_subscription(settings, user)
    updated = stripe.Subscription.modify(
        subscription["id"],
        api_key=_api_key(settings),
        cancel_at_period_end=cancel,
    )
    return summarize_subscription(settings, updated)


def parse_webhook_event(settings: Settings, payload: bytes, signature: str) -> Dict[str, Any]:
    """Verify the ``Stripe-Signature`` header and decode the event body.

    Raises ``stripe.SignatureVerificationError`` for a bad signature and
    ``ValueError`` for an unreadable payload.
    """

    secret = settings.stripe_webhook_secret
    if not secret:
        raise BillingNotConfiguredError(
            "Stripe webhook secret is not configured. Set PC_STRIPE_WEBHOOK_SECRET."
        )
    event = stripe.Webhook.construct_event(payload, signature, secret).to_dict()
    if "id" not in event or "type" not in event:
        raise ValueError("Malformed Stripe event.")
    return event


def _user_from_metadata(db: Session, obj: Mapping[str, Any]) -> Optional[User]:
    raw = (obj.get("metadata") or {}).get("userId") or obj.get("client_reference_id")
    try:
        return db.get(User, int(raw)) if raw is not None else None
    except (TypeError, ValueError):
        return None


def _resolve_user(db: Session, obj: Mapping[str, Any]) -> Optional[User]:
    customer_id = obj.get("customer")
    if customer_id:
        user = get_user_by_stripe_customer(db, customer_id)
        if user is not None:
            return user
    return _user_from_metadata(db, obj)


def _handle_checkout_completed(db: Session, obj: Mapping[str, Any]) -> Optional[User]:
    if obj.get("mode") != "subscription":
        return None
    user = _user_from_metadata(db, obj)
    if user is None:
        return None
    if obj.get("customer"):
        user.stripe_customer_id = obj["customer"]
    if obj.get("subscription"):
        user.stripe_subscription_id = obj["subscription"]
    db.add(user)
    db.flush()
    return user


def _handle_subscription_changed(
    db: Session,
    settings: Settings,
    obj: Mapping[str, Any],
    correlation_id: Optional[str],
) -> Optional[User]:
    user = _resolve_user(db, obj)
    if user is None:
        return None

    status = obj.get("status") or "unknown"
    user.stripe_subscription_id = obj.get("id")
    if obj.get("customer"):
        user.stripe_customer_id = obj["customer"]
    user.subscription_status = status
    db.add(user)
    db.flush()

    if status in LAPSED_STATUSES:
        target = "free"
    elif status in ENTITLED_STATUSES:
        target = tier_for_price_id(settings, _subscription_price_id(obj))
    else:
        return user

    # Staff and admin tiers are never managed by billing.
    if user.tier == "employee":
        return user
    set_user_tier(
        db, user, target, source="stripe_webhook", correlation_id=correlation_id, commit=False
    )
    return user


def _handle_subscription_deleted(
    db: Session, obj: Mapping[str, Any], correlation_id: Optional[str]
) -> Tuple[Optional[User], str]:
    user = _resolve_user(db, obj)
    if user is None:
        return None, "no_user"
    # A replaced subscription ending must not touch the one on file.
    if user.stripe_subscription_id not in (None, obj.get("id")):
        return user, "stale_subscription"

    user.stripe_subscription_id = None
    user.subscription_status = "canceled"
    db.add(user)
    db.flush()
    if user.tier != "employee":
        set_user_tier(
            db, user, "free", source="stripe_webhook", correlation_id=correlation_id, commit=False
        )
    return user, "downgraded"


def _notify_billing(db: Session, user: User, title: str, message: str, important: bool) -> None:
    create_notification(
        db,
        user_id=user.id,
        category="billing",
        title=title,
        message=message,
        link_url="/account/billing",
        icon="credit-card",
        important=important,
        commit=False,
    )


def handle_webhook_event(
    db: Session,
    settings: Settings,
    event: Mapping[str, Any],
    *,
    correlation_id: Optional[str] = None,
) -> bool:
    """Apply a verified Stripe event; returns False for an already seen event.

    Events are applied in arrival order. The ledger row and every side
    effect share one transaction: a concurrent duplicate fails on the ledger
    insert before applying anything, and a failure leaves nothing recorded so
    Stripe can retry.
    """

    event_id = str(event["id"])
    event_type = str(event["type"])
    ledger = StripeEvent(event_id=event_id, type=event_type)
    db.add(ledger)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info(
            "Duplicate Stripe event ignored",
            extra={"extra": {"correlation_id": correlation_id, "event_id": event_id}},
        )
        return False

    obj: Mapping[str, Any] = (event.get("data") or {}).get("object") or {}
    user: Optional[User] = None
    summary = "ignored"

    if event_type == "checkout.session.completed":
        user = _handle_checkout_completed(db, obj)
        summary = "linked" if user else "no_user"
    elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
        user = _handle_subscription_changed(db, settings, obj, correlation_id)
        summary = f"status={obj.get('status')}" if user else "no_user"
    elif event_type == "customer.subscription.deleted":
        user, summary = _handle_subscription_deleted(db, obj, correlation_id)
    elif event_type == "customer.subscription.trial_will_end":
        user = _resolve_user(db, obj)
        if user is not None:
            ends = _from_timestamp(obj.get("trial_end"))
            when = f" on {ends:%Y-%m-%d}" if ends else " soon"
            _notify_billing(db, user, "Trial ending", f"Your free trial ends{when}.", False)
        summary = "notified" if user else "no_user"
    elif event_type in ("invoice.paid", "invoice.payment_failed"):
        user = _resolve_user(db, obj)
        failed = event_type == "invoice.payment_failed"
        if user is not None:
            amount = (obj.get("amount_paid") if not failed else obj.get("amount_due")) or 0
            if failed:
                _notify_billing(
                    db,
                    user,
                    "Payment failed",
                    f"We could not collect ${amount / 100:.2f}. Please update your payment method.",
                    True,
                )
            else:
                _notify_billing(
                    db,
                    user,
                    "Payment received",
                    f"Thank you! We received ${amount / 100:.2f}.",
                    False,
                )
        summary = ("payment_failed" if failed else "paid") if user else "no_user"

    level = "WARNING" if summary == "no_user" or event_type == "invoice.payment_failed" else "INFO"
    if event_type in HANDLED_EVENT_TYPES:
        record_system_event(
            db,
            level=level,
            category="billing",
            message=f"Stripe {event_type}: {summary}",
            user_id=user.id if user is not None else None,
            correlation_id=correlation_id,
            details={"event_id": event_id, "object_id": obj.get("id")},
            commit=False,
        )

    ledger.summary = summary
    db.commit()

    logger.info(
        "Stripe event processed",
        extra={
            "extra": {
                "correlation_id": correlation_id,
                "event_id": event_id,
                "type": event_type,
                "summary": summary,
            }
        },
    )
    return True


__all__ = [
    "BillingNotConfiguredError",
    "HANDLED_EVENT_TYPES",
    "NoSubscriptionError",
    "change_subscription_tier",
    "create_checkout_session",
    "get_or_create_customer",
    "get_subscription_summary",
    "handle_webhook_event",
    "parse_webhook_event",
    "price_id_for_tier",
    "price_table",
    "set_cancel_at_period_end",
    "summarize_subscription",
    "tier_for_price_id",
]
