from __future__ import annotations

import hashlib
import hmac
import json
import os
import time
from typing import Any

import pytest
import stripe
from fastapi.testclient import TestClient

from portfolio_consultant.core.auth import hash_password
from portfolio_consultant.core.config import get_settings
from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import (
    Coupon,
    StripeEvent,
    SystemEvent,
    User,
    UserNotification,
)
from portfolio_consultant.services import billing as billing_service

client = TestClient(app)

WEBHOOK_SECRET = "whsec_test_secret"

_ids: dict[str, int] = {}


def setup_module() -> None:  # type: ignore[override]
    os.environ["PC_STRIPE_SECRET_KEY"] = "sk_test_123"
    os.environ["PC_STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET
    os.environ["PC_STRIPE_PAID_PRICE_ID"] = "price_paid"
    os.environ["PC_STRIPE_PREMIUM_PRICE_ID"] = "price_premium"
    os.environ["PC_STRIPE_MENTORSHIP_PRICE_ID"] = "price_mentorship"
    get_settings.cache_clear()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        for username, tier, customer in (
            ("buyer", "free", None),
            ("subscriber", "paid", "cus_sub"),
            ("staff", "employee", "cus_staff"),
        ):
            user = User(
                username=username,
                email=f"{username}@example.com",
                name=username.title(),
                password_hash=hash_password("secret123"),
                tier=tier,
                stripe_customer_id=customer,
            )
            session.add(user)
            session.commit()
            _ids[username] = user.id

        session.add(
            Coupon(code="LAUNCH20", description="Launch promo", discount_percentage=20)
        )
        session.commit()


def teardown_module() -> None:  # type: ignore[override]
    for name in (
        "PC_STRIPE_SECRET_KEY",
        "PC_STRIPE_WEBHOOK_SECRET",
        "PC_STRIPE_PAID_PRICE_ID",
        "PC_STRIPE_PREMIUM_PRICE_ID",
        "PC_STRIPE_MENTORSHIP_PRICE_ID",
    ):
        os.environ.pop(name, None)
    get_settings.cache_clear()


def _login(username: str) -> None:
    client.cookies.clear()
    resp = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert resp.status_code == 200


def _signed(event: dict[str, Any], secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return payload.encode("utf-8"), f"t={timestamp},v1={signature}"


def _post_event(event: dict[str, Any], secret: str = WEBHOOK_SECRET):
    body, header = _signed(event, secret)
    return client.post(
        "/api/billing/webhook",
        content=body,
        headers={"Stripe-Signature": header, "Content-Type": "application/json"},
    )


def _subscription_event(
    event_id: str,
    event_type: str,
    *,
    customer: str,
    status: str,
    price: str,
    subscription_id: str = "sub_123",
) -> dict[str, Any]:
    return {
        "id": event_id,
        "type": event_type,
        "data": {
            "object": {
                "id": subscription_id,
                "object": "subscription",
                "customer": customer,
                "status": status,
                "cancel_at_period_end": False,
                "items": {"data": [{"id": "si_1", "price": {"id": price}}]},
            }
        },
    }


def _tier(username: str) -> str:
    with SessionLocal() as session:
        return session.get(User, _ids[username]).tier


def test_checkout_creates_customer_and_applies_coupon(monkeypatch) -> None:
    calls: dict[str, Any] = {}

    def fake_customer_create(**params: Any) -> dict[str, Any]:
        calls["customer"] = params
        return {"id": "cus_new"}

    def fake_session_create(**params: Any) -> dict[str, Any]:
        calls["session"] = params
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(stripe.Customer, "create", fake_customer_create)
    monkeypatch.setattr(stripe.checkout.Session, "create", fake_session_create)

    _login("buyer")
    resp = client.post(
        "/api/billing/create-checkout-session",
        json={"tier": "premium", "coupon_code": "launch20"},
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "session_id": "cs_test_1",
        "url": "https://checkout.stripe.test/cs_test_1",
    }

    assert calls["customer"]["email"] == "buyer@example.com"
    assert calls["customer"]["api_key"] == "sk_test_123"
    session_params = calls["session"]
    assert session_params["mode"] == "subscription"
    assert session_params["customer"] == "cus_new"
    assert session_params["line_items"] == [{"price": "price_premium", "quantity": 1}]
    assert session_params["discounts"] == [{"coupon": "LAUNCH20"}]
    assert session_params["metadata"]["userId"] == str(_ids["buyer"])

    with SessionLocal() as session:
        assert session.get(User, _ids["buyer"]).stripe_customer_id == "cus_new"
        coupon = session.query(Coupon).filter(Coupon.code == "LAUNCH20").one()
        assert coupon.uses_count == 1


def test_checkout_rejects_bad_input(monkeypatch) -> None:
    monkeypatch.setattr(
        stripe.checkout.Session,
        "create",
        lambda **_: {"id": "cs_unused", "url": None},
    )
    _login("buyer")
    assert client.post("/api/billing/create-checkout-session", json={}).status_code == 422

    resp = client.post(
        "/api/billing/create-checkout-session",
        json={"price_id": "price_unknown"},
    )
    assert resp.status_code == 400

    resp = client.post(
        "/api/billing/create-checkout-session",
        json={"tier": "paid", "coupon_code": "MISSING"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Coupon not found."


def test_checkout_without_stripe_key_returns_503(monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "stripe_secret_key", None)
    _login("buyer")
    resp = client.post("/api/billing/create-checkout-session", json={"tier": "paid"})
    assert resp.status_code == 503


def test_stripe_errors_are_reported_as_400(monkeypatch) -> None:
    def failing_create(**_: Any) -> dict[str, Any]:
        raise stripe.InvalidRequestError("No such coupon", param="discounts")

    monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)
    _login("buyer")
    resp = client.post("/api/billing/create-checkout-session", json={"tier": "paid"})
    assert resp.status_code == 400


def test_webhook_requires_valid_signature() -> None:
    event = _subscription_event(
        "evt_bad", "customer.subscription.updated",
        customer="cus_sub", status="active", price="price_premium",
    )
    body, _ = _signed(event)
    resp = client.post("/api/billing/webhook", content=body)
    assert resp.status_code == 400

    resp = _post_event(event, secret="whsec_wrong")
    assert resp.status_code == 400
    assert _tier("subscriber") == "paid"

    with SessionLocal() as session:
        rejected = (
            session.query(SystemEvent)
            .filter(SystemEvent.category == "billing", SystemEvent.level == "WARNING")
            .count()
        )
        assert rejected == 1


def test_subscription_update_moves_tier_once() -> None:
    event = _subscription_event(
        "evt_upgrade", "customer.subscription.updated",
        customer="cus_sub", status="active", price="price_premium",
    )
    resp = _post_event(event)
    assert resp.status_code == 200
    assert resp.json() == {
        "received": True,
        "duplicate": False,
        "type": "customer.subscription.updated",
    }
    assert _tier("subscriber") == "premium"

    with SessionLocal() as session:
        user = session.get(User, _ids["subscriber"])
        assert user.stripe_subscription_id == "sub_123"
        assert user.subscription_status == "active"

    # A manual change is not undone by a replayed event.
    with SessionLocal() as session:
        session.get(User, _ids["subscriber"]).tier = "mentorship"
        session.commit()
    resp = _post_event(event)
    assert resp.json()["duplicate"] is True
    assert _tier("subscriber") == "mentorship"

    with SessionLocal() as session:
        assert session.query(StripeEvent).filter(StripeEvent.event_id == "evt_upgrade").count() == 1


def test_lapsed_status_and_deletion_downgrade_to_free() -> None:
    resp = _post_event(
        _subscription_event(
            "evt_unpaid", "customer.subscription.updated",
            customer="cus_sub", status="unpaid", price="price_premium",
        )
    )
    assert resp.status_code == 200
    assert _tier("subscriber") == "free"

    _post_event(
        _subscription_event(
            "evt_back", "customer.subscription.updated",
            customer="cus_sub", status="active", price="price_paid",
        )
    )
    assert _tier("subscriber") == "paid"

    resp = _post_event(
        _subscription_event(
            "evt_deleted", "customer.subscription.deleted",
            customer="cus_sub", status="canceled", price="price_paid",
        )
    )
    assert resp.status_code == 200
    assert _tier("subscriber") == "free"
    with SessionLocal() as session:
        user = session.get(User, _ids["subscriber"])
        assert user.stripe_subscription_id is None
        assert user.subscription_status == "canceled"


def test_deleting_a_replaced_subscription_keeps_current_plan() -> None:
    resp = _post_event(
        _subscription_event(
            "evt_new_plan", "customer.subscription.updated",
            customer="cus_sub", status="active", price="price_premium",
            subscription_id="sub_new",
        )
    )
    assert resp.status_code == 200
    assert _tier("subscriber") == "premium"

    resp = _post_event(
        _subscription_event(
            "evt_old_plan_deleted", "customer.subscription.deleted",
            customer="cus_sub", status="canceled", price="price_paid",
            subscription_id="sub_old",
        )
    )
    assert resp.status_code == 200
    assert _tier("subscriber") == "premium"
    with SessionLocal() as session:
        user = session.get(User, _ids["subscriber"])
        assert user.stripe_subscription_id == "sub_new"
        assert user.subscription_status == "active"
        ledger = (
            session.query(StripeEvent)
            .filter(StripeEvent.event_id == "evt_old_plan_deleted")
            .one()
        )
        assert ledger.summary == "stale_subscription"


def test_employee_tier_is_not_managed_by_billing() -> None:
    _post_event(
        _subscription_event(
            "evt_staff", "customer.subscription.deleted",
            customer="cus_staff", status="canceled", price="price_paid",
        )
    )
    assert _tier("staff") == "employee"


def test_checkout_completed_links_subscription() -> None:
    resp = _post_event(
        {
            "id": "evt_checkout",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_test_1",
                    "mode": "subscription",
                    "customer": "cus_new",
                    "subscription": "sub_buyer",
                    "metadata": {"userId": str(_ids["buyer"])},
                }
            },
        }
    )
    assert resp.status_code == 200
    with SessionLocal() as session:
        assert session.get(User, _ids["buyer"]).stripe_subscription_id == "sub_buyer"


def test_invoice_events_notify_member() -> None:
    _post_event(
        {
            "id": "evt_invoice_failed",
            "type": "invoice.payment_failed",
            "data": {"object": {"id": "in_1", "customer": "cus_new", "amount_due": 2999}},
        }
    )
    with SessionLocal() as session:
        note = (
            session.query(UserNotification)
            .filter(
                UserNotification.user_id == _ids["buyer"],
                UserNotification.category == "billing",
            )
            .one()
        )
        assert note.title == "Payment failed"
        assert "$29.99" in note.message
        assert note.important is True


def _invoice_paid(event_id: str) -> dict[str, Any]:
    return {
        "id": event_id,
        "type": "invoice.paid",
        "data": {"object": {"id": "in_2", "customer": "cus_new", "amount_paid": 1500}},
    }


def _billing_notes(session) -> int:  # type: ignore[no-untyped-def]
    return (
        session.query(UserNotification)
        .filter(
            UserNotification.user_id == _ids["buyer"],
            UserNotification.title == "Payment received",
        )
        .count()
    )


def test_failed_event_leaves_nothing_recorded(monkeypatch) -> None:
    def broken_record(*_: Any, **__: Any) -> None:
        raise RuntimeError("event store unavailable")

    monkeypatch.setattr(billing_service, "record_system_event", broken_record)
    with SessionLocal() as session:
        with pytest.raises(RuntimeError):
            billing_service.handle_webhook_event(
                session, get_settings(), _invoice_paid("evt_paid_retry")
            )

    with SessionLocal() as session:
        assert _billing_notes(session) == 0
        assert (
            session.query(StripeEvent).filter(StripeEvent.event_id == "evt_paid_retry").count()
            == 0
        )

    monkeypatch.undo()
    resp = _post_event(_invoice_paid("evt_paid_retry"))
    assert resp.json()["duplicate"] is False
    with SessionLocal() as session:
        assert _billing_notes(session) == 1


def test_recorded_event_is_not_applied_again() -> None:
    with SessionLocal() as session:
        applied = billing_service.handle_webhook_event(
            session, get_settings(), _invoice_paid("evt_paid_retry")
        )
        assert applied is False

    with SessionLocal() as session:
        assert _billing_notes(session) == 1


def test_unhandled_event_types_are_acknowledged() -> None:
    resp = _post_event({"id": "evt_other", "type": "charge.refunded", "data": {"object": {}}})
    assert resp.status_code == 200
    assert resp.json()["duplicate"] is False


def test_subscription_summary_and_cancel(monkeypatch) -> None:
    subscription = {
        "id": "sub_buyer",
        "status": "active",
        "cancel_at_period_end": False,
        "current_period_end": 1893456000,
        "items": {"data": [{"id": "si_9", "price": {"id": "price_premium"}}]},
    }
    modified: dict[str, Any] = {}

    def fake_retrieve(subscription_id: str, **_: Any) -> dict[str, Any]:
        assert subscription_id == "sub_buyer"
        return dict(subscription)

    def fake_modify(subscription_id: str, **params: Any) -> dict[str, Any]:
        modified.update(params)
        updated = dict(subscription)
        if "cancel_at_period_end" in params:
            updated["cancel_at_period_end"] = params["cancel_at_period_end"]
        if "items" in params:
            updated["items"] = {"data": [{"id": "si_9", "price": {"id": params["items"][0]["price"]}}]}
        return updated

    monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)
    monkeypatch.setattr(stripe.Subscription, "modify", fake_modify)

    _login("buyer")
    summary = client.get("/api/billing/subscription").json()
    assert summary["tier"] == "premium"
    assert summary["cancel_at_period_end"] is False
    assert summary["current_period_end"].startswith("2030-01-01")

    resp = client.post("/api/billing/subscription/cancel")
    assert resp.status_code == 200
    assert resp.json()["cancel_at_period_end"] is True
    assert modified["cancel_at_period_end"] is True

    resp = client.post("/api/billing/subscription/reactivate")
    assert resp.json()["cancel_at_period_end"] is False

    resp = client.patch("/api/billing/subscription", json={"tier": "mentorship"})
    assert resp.status_code == 200
    assert resp.json()["tier"] == "mentorship"
    assert modified["items"] == [{"id": "si_9", "price": "price_mentorship"}]
    assert _tier("buyer") == "mentorship"


def test_member_without_subscription() -> None:
    _login("staff")
    resp = client.get("/api/billing/subscription")
    assert resp.status_code == 200
    assert resp.json() is None
    assert client.post("/api/billing/subscription/cancel").status_code == 404
