from __future__ import annotations

from fastapi.testclient import TestClient

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import User

client = TestClient(app)


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def test_register_and_login_creates_session_cookie() -> None:
    resp_register = client.post(
        "/api/auth/register",
        json={
            "username": "alice",
            "email": "Alice@Example.com",
            "password": "secret123",
            "name": "Alice",
        },
    )
    assert resp_register.status_code == 201
    data = resp_register.json()
    assert data["username"] == "alice"
    assert data["email"] == "alice@example.com"
    assert data["tier"] == "free"
    assert data["is_admin"] is False
    assert "pc_session" in resp_register.cookies

    resp_login = client.post(
        "/api/auth/login",
        json={"username": "alice", "password": "secret123"},
    )
    assert resp_login.status_code == 200
    cookies = resp_login.cookies
    assert "pc_session" in cookies
    client.cookies.clear()
    client.cookies.update(cookies)

    resp_me = client.get("/api/auth/me")
    assert resp_me.status_code == 200
    assert resp_me.json()["username"] == "alice"


def test_register_rejects_duplicate_username_and_email() -> None:
    resp = client.post(
        "/api/auth/register",
        json={
            "username": "alice",
            "email": "other@example.com",
            "password": "secret123",
            "name": "Alice Two",
        },
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Username is already taken."

    resp = client.post(
        "/api/auth/register",
        json={
            "username": "alice2",
            "email": "ALICE@example.com",
            "password": "secret123",
            "name": "Alice Two",
        },
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email is already registered."


def test_register_validates_payload() -> None:
    resp = client.post(
        "/api/auth/register",
        json={"username": "ab", "email": "not-an-email", "password": "x", "name": ""},
    )
    assert resp.status_code == 422


def test_login_rejects_bad_password_and_anonymous_me() -> None:
    resp = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401

    client.cookies.clear()
    assert client.get("/api/auth/me").status_code == 401

    client.cookies.set("pc_session", "garbage.token")
    assert client.get("/api/auth/me").status_code == 401
    client.cookies.clear()


def test_is_admin_reports_false_for_anonymous_and_members() -> None:
    client.cookies.clear()
    assert client.get("/api/auth/is-admin").json() == {"is_admin": False}

    client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
    assert client.get("/api/auth/is-admin").json() == {"is_admin": False}


def test_profile_update_sets_phone() -> None:
    client.cookies.clear()
    client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})

    resp = client.patch("/api/auth/profile", json={"phone": "+1 555 123 4567"})
    assert resp.status_code == 200
    assert resp.json()["phone"] == "+1 555 123 4567"

    resp = client.patch("/api/auth/profile", json={"phone": "abc"})
    assert resp.status_code == 422


def test_change_password_and_relogin() -> None:
    resp_register = client.post(
        "/api/auth/register",
        json={
            "username": "bob",
            "email": "bob@example.com",
            "password": "start123",
            "name": "Bob",
        },
    )
    assert resp_register.status_code == 201
    client.cookies.clear()
    client.cookies.update(resp_register.cookies)

    resp_bad = client.post(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "newpass456"},
    )
    assert resp_bad.status_code == 400

    resp_change = client.post(
        "/api/auth/change-password",
        json={"current_password": "start123", "new_password": "newpass456"},
    )
    assert resp_change.status_code == 204

    resp_old = client.post("/api/auth/login", json={"username": "bob", "password": "start123"})
    assert resp_old.status_code == 401

    resp_new = client.post("/api/auth/login", json={"username": "bob", "password": "newpass456"})
    assert resp_new.status_code == 200


def test_disabled_account_cannot_log_in_or_use_session() -> None:
    client.cookies.clear()
    resp_login = client.post("/api/auth/login", json={"username": "bob", "password": "newpass456"})
    assert resp_login.status_code == 200

    with SessionLocal() as session:
        bob = session.query(User).filter(User.username == "bob").one()
        bob.disabled = True
        session.commit()

    assert client.get("/api/auth/me").status_code == 401
    resp = client.post("/api/auth/login", json={"username": "bob", "password": "newpass456"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Account is disabled."


def test_logout_clears_cookie() -> None:
    client.cookies.clear()
    client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
    resp = client.post("/api/auth/logout")
    assert resp.status_code == 204
    assert "pc_session" in resp.headers.get("set-cookie", "")
