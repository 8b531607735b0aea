from __future__ import annotations

from fastapi.testclient import TestClient

from portfolio_consultant.core.auth import hash_password
from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import StockAlert, User

client = TestClient(app)

_ids: dict[str, int] = {}


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        for username, tier in (("basic", "free"), ("pro", "premium"), ("rival", "paid")):
            user = User(
                username=username,
                email=f"{username}@example.com",
                name=username.title(),
                password_hash=hash_password("secret123"),
                tier=tier,
            )
            session.add(user)
            session.commit()
            _ids[username] = user.id

        alert = StockAlert(
            symbol="MSFT",
            company_name="Microsoft",
            current_price=300.0,
            buy_zone_min=280.0,
            buy_zone_max=310.0,
            target1=350.0,
            target2=380.0,
            target3=420.0,
            technical_reasons=[],
        )
        session.add(alert)
        session.commit()
        _ids["alert"] = alert.id


def _login(username: str) -> None:
    client.cookies.clear()
    resp = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert resp.status_code == 200


def test_free_members_get_upgrade_message() -> None:
    _login("basic")
    resp = client.post("/api/alert-preferences/", json={"stock_alert_id": _ids["alert"]})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Upgrade to Premium to customize alert notifications."


def test_upsert_creates_then_replaces() -> None:
    _login("pro")
    resp = client.post(
        "/api/alert-preferences/",
        json={"stock_alert_id": _ids["alert"], "target_two": False, "percent_change": 10},
    )
    assert resp.status_code == 201
    created = resp.json()
    _ids["pref"] = created["id"]
    assert created["target_one"] is True
    assert created["target_two"] is False
    assert created["percent_change"] == 10

    resp = client.post(
        "/api/alert-preferences/",
        json={"stock_alert_id": _ids["alert"], "custom_target_price": 333.0},
    )
    assert resp.status_code == 200
    replaced = resp.json()
    assert replaced["id"] == _ids["pref"]
    assert replaced["target_two"] is True
    assert replaced["percent_change"] is None
    assert replaced["custom_target_price"] == 333.0


def test_upsert_for_missing_alert_returns_404() -> None:
    _login("pro")
    resp = client.post("/api/alert-preferences/", json={"stock_alert_id": 9999})
    assert resp.status_code == 404


def test_get_by_stock_and_list() -> None:
    _login("pro")
    resp = client.get(f"/api/alert-preferences/stock/{_ids['alert']}")
    assert resp.status_code == 200
    assert resp.json()["id"] == _ids["pref"]
    assert [p["id"] for p in client.get("/api/alert-preferences/").json()] == [_ids["pref"]]

    _login("rival")
    assert client.get(f"/api/alert-preferences/stock/{_ids['alert']}").status_code == 404
    assert client.get("/api/alert-preferences/").json() == []


def test_partial_update_keeps_other_fields() -> None:
    _login("pro")
    resp = client.put(
        f"/api/alert-preferences/{_ids['pref']}",
        json={"notify_email": True, "target_three": None},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["notify_email"] is True
    assert body["target_three"] is True
    assert body["custom_target_price"] == 333.0


def test_other_members_cannot_touch_preference() -> None:
    _login("rival")
    resp = client.put(f"/api/alert-preferences/{_ids['pref']}", json={"notify_sms": True})
    assert resp.status_code == 403
    assert client.delete(f"/api/alert-preferences/{_ids['pref']}").status_code == 403


def test_delete_preference() -> None:
    _login("pro")
    assert client.delete(f"/api/alert-preferences/{_ids['pref']}").status_code == 204
    assert client.delete(f"/api/alert-preferences/{_ids['pref']}").status_code == 404
