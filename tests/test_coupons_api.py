from __future__ import annotations

from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from portfolio_consultant.core.auth import hash_password
from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import Coupon, User
from portfolio_consultant.services.coupons import check_coupon

client = TestClient(app)

_ids: dict[str, int] = {}


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        for username, is_admin in (("owner", True), ("shopper", False)):
            user = User(
                username=username,
                email=f"{username}@example.com",
                name=username.title(),
                password_hash=hash_password("secret123"),
                tier="employee" if is_admin else "free",
                is_admin=is_admin,
            )
            session.add(user)
            session.commit()
            _ids[username] = user.id


def _login(username: str) -> None:
    client.cookies.clear()
    resp = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert resp.status_code == 200


def _validate(code: str) -> dict:
    resp = client.post("/api/coupons/validate", json={"code": code})
    assert resp.status_code == 200
    return resp.json()


def test_admin_creates_coupon_with_normalized_code() -> None:
    _login("shopper")
    payload = {"code": "welcome10", "description": "Welcome discount", "discount_percentage": 10}
    assert client.post("/api/coupons/", json=payload).status_code == 403

    _login("owner")
    resp = client.post("/api/coupons/", json=payload)
    assert resp.status_code == 201
    assert resp.json()["code"] == "WELCOME10"
    assert resp.json()["uses_count"] == 0
    _ids["welcome"] = resp.json()["id"]

    assert client.post("/api/coupons/", json=payload).status_code == 400

    resp = client.post(
        "/api/coupons/",
        json={
            "code": "BACKWARDS",
            "description": "Bad window",
            "discount_percentage": 5,
            "valid_from": "2030-02-01T00:00:00Z",
            "valid_until": "2030-01-01T00:00:00Z",
        },
    )
    assert resp.status_code == 400


def test_validate_coupon_for_members() -> None:
    client.cookies.clear()
    assert client.post("/api/coupons/validate", json={"code": "x"}).status_code == 401

    _login("shopper")
    body = _validate(" Welcome10 ")
    assert body["valid"] is True
    assert body["code"] == "WELCOME10"
    assert body["discount_percentage"] == 10

    body = _validate("NOPE")
    assert body == {
        "valid": False,
        "code": "NOPE",
        "discount_percentage": None,
        "discount_amount": None,
        "reason": "Coupon not found.",
    }


def test_inactive_and_exhausted_coupons_are_invalid() -> None:
    _login("owner")
    resp = client.patch(f"/api/coupons/{_ids['welcome']}", json={"max_uses": 1})
    assert resp.status_code == 200

    with SessionLocal() as session:
        coupon = session.get(Coupon, _ids["welcome"])
        coupon.uses_count = 1
        session.commit()

    _login("shopper")
    assert _validate("WELCOME10")["reason"] == "Coupon usage limit reached."

    _login("owner")
    client.patch(f"/api/coupons/{_ids['welcome']}", json={"max_uses": None, "is_active": False})
    _login("shopper")
    assert _validate("WELCOME10")["reason"] == "Coupon is no longer active."


def test_check_coupon_validity_window() -> None:
    now = datetime(2030, 1, 15, tzinfo=UTC)
    coupon = Coupon(
        code="WINDOW",
        description="Window coupon",
        discount_percentage=5,
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=1),
        uses_count=0,
        is_active=True,
    )
    assert check_coupon(coupon, now) == (True, None)
    assert check_coupon(coupon, now - timedelta(days=2)) == (False, "Coupon is not valid yet.")
    assert check_coupon(coupon, now + timedelta(days=2)) == (False, "Coupon has expired.")
    assert check_coupon(None, now) == (False, "Coupon not found.")


def test_delete_coupon() -> None:
    _login("owner")
    assert len(client.get("/api/coupons/").json()) == 1
    assert client.delete(f"/api/coupons/{_ids['welcome']}").status_code == 204
    assert client.delete(f"/api/coupons/{_ids['welcome']}").status_code == 404


def test_discounts_for_members() -> None:
    _login("owner")
    resp = client.post(
        "/api/discounts/",
        json={
            "user_id": _ids["shopper"],
            "discount_percentage": 25,
            "reason": "loyalty",
            "notes": "Three years subscribed",
        },
    )
    assert resp.status_code == 201
    discount_id = resp.json()["id"]

    resp = client.post(
        "/api/discounts/",
        json={"user_id": 9999, "discount_percentage": 25, "reason": "loyalty"},
    )
    assert resp.status_code == 404

    listed = client.get("/api/discounts/", params={"user_id": _ids["shopper"]}).json()
    assert [d["id"] for d in listed] == [discount_id]

    _login("shopper")
    assert client.get("/api/discounts/").status_code == 403
    mine = client.get("/api/discounts/me").json()
    assert [d["reason"] for d in mine] == ["loyalty"]

    _login("owner")
    resp = client.patch(f"/api/discounts/{discount_id}", json={"is_active": False})
    assert resp.status_code == 200
    _login("shopper")
    assert client.get("/api/discounts/me").json() == []

    _login("owner")
    assert client.delete(f"/api/discounts/{discount_id}").status_code == 204
