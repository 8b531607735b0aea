from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from portfolio_consultant.core.auth import hash_password
from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import SystemEvent, User
from portfolio_consultant.services.system_events import record_system_event

client = TestClient(app)


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        session.add(
            User(
                username="ops",
                email="ops@example.com",
                name="Ops",
                password_hash=hash_password("secret123"),
                tier="employee",
                is_admin=True,
            )
        )
        session.commit()
        record_system_event(
            session,
            level="INFO",
            category="billing",
            message="Test billing event",
            correlation_id="test-corr-id",
            details={"foo": "bar"},
        )

    client.post("/api/auth/login", json={"username": "ops", "password": "secret123"})


def test_list_system_events_returns_recent_entries() -> None:
    resp = client.get("/api/system-events/?limit=10")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) >= 1
    first = data[0]
    assert first["category"] == "billing"
    assert first["message"] == "Test billing event"
    assert first["correlation_id"] == "test-corr-id"
    assert json.loads(first["details"]) == {"foo": "bar"}


def test_system_events_require_admin() -> None:
    anonymous = TestClient(app)
    assert anonymous.get("/api/system-events/").status_code == 401


def test_long_messages_are_truncated() -> None:
    with SessionLocal() as session:
        event = record_system_event(
            session, level="WARNING", category="tier", message="x" * 400, user_id=7
        )
        assert len(event.message) == 255

    resp = client.get("/api/system-events/", params={"user_id": 7, "level": "warning"})
    assert [e["category"] for e in resp.json()] == ["tier"]


def test_cleanup_system_events_removes_older_than_retention() -> None:
    with SessionLocal() as session:
        session.query(SystemEvent).delete()
        session.commit()
        session.add_all(
            [
                SystemEvent(
                    level="INFO",
                    category="test",
                    message="old",
                    created_at=datetime.now(UTC) - timedelta(days=30),
                ),
                SystemEvent(
                    level="INFO",
                    category="test",
                    message="new",
                    created_at=datetime.now(UTC) - timedelta(days=1),
                ),
            ]
        )
        session.commit()

    resp = client.post("/api/system-events/cleanup", json={"max_days": 7, "dry_run": True})
    assert resp.json() == {"deleted": 1, "remaining": 2}

    resp = client.post("/api/system-events/cleanup", json={"max_days": 7})
    assert resp.status_code == 200
    body = resp.json()
    assert body["deleted"] == 1

    remaining = client.get("/api/system-events/?limit=50").json()
    messages = [r["message"] for r in remaining]
    assert "old" not in messages
    assert "new" in messages
