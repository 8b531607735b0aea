from __future__ import annotations

from fastapi.testclient import TestClient

from portfolio_consultant.core.auth import hash_password
from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import EducationProgress, User

client = TestClient(app)

_ids: dict[str, int] = {}


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        for username, tier, is_admin in (
            ("educator", "employee", True),
            ("student", "paid", False),
        ):
            user = User(
                username=username,
                email=f"{username}@example.com",
                name=username.title(),
                password_hash=hash_password("secret123"),
                tier=tier,
                is_admin=is_admin,
            )
            session.add(user)
            session.commit()
            _ids[username] = user.id


def _login(username: str) -> None:
    client.cookies.clear()
    resp = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert resp.status_code == 200


def _content(title: str, tier: str, **extra: str) -> dict:
    payload = {
        "title": title,
        "description": f"{title} explained step by step.",
        "type": "article",
        "content_url": f"https://learn.example.com/{title.lower().replace(' ', '-')}",
        "tier": tier,
    }
    payload.update(extra)
    return payload


def test_admin_publishes_content() -> None:
    _login("student")
    assert client.post("/api/education/", json=_content("Nope", "free")).status_code == 403

    _login("educator")
    for key, payload in (
        ("basics", _content("Chart Basics", "free", category="technical")),
        ("risk", _content("Position Sizing", "paid", category="risk", level="intermediate")),
        ("options", _content("Options Greeks", "premium", level="advanced")),
    ):
        resp = client.post("/api/education/", json=payload)
        assert resp.status_code == 201
        _ids[key] = resp.json()["id"]


def test_listing_is_filtered_by_tier() -> None:
    client.cookies.clear()
    titles = {c["title"] for c in client.get("/api/education/").json()}
    assert titles == {"Chart Basics"}

    _login("student")
    titles = {c["title"] for c in client.get("/api/education/").json()}
    assert titles == {"Chart Basics", "Position Sizing"}

    _login("educator")
    assert len(client.get("/api/education/").json()) == 3


def test_listing_filters_and_search() -> None:
    _login("student")
    resp = client.get("/api/education/", params={"category": "risk"})
    assert [c["title"] for c in resp.json()] == ["Position Sizing"]

    resp = client.get("/api/education/", params={"level": "beginner"})
    assert [c["title"] for c in resp.json()] == ["Chart Basics"]

    resp = client.get("/api/education/", params={"q": "SIZING"})
    assert [c["title"] for c in resp.json()] == ["Position Sizing"]


def test_reading_content_above_tier_is_forbidden() -> None:
    _login("student")
    assert client.get(f"/api/education/{_ids['risk']}").status_code == 200
    resp = client.get(f"/api/education/{_ids['options']}")
    assert resp.status_code == 403
    assert resp.json()["detail"] == "This content requires the premium tier."
    assert client.get("/api/education/9999").status_code == 404


def test_partial_progress_does_not_award_badges() -> None:
    _login("student")
    resp = client.put(
        f"/api/education/{_ids['basics']}/progress",
        json={"percent_complete": 40, "notes": "halfway"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["completed"] is False
    assert body["new_achievements"] == []


def test_completion_awards_first_badge_once() -> None:
    _login("student")
    resp = client.put(f"/api/education/{_ids['basics']}/progress", json={"percent_complete": 100})
    body = resp.json()
    assert body["completed"] is True
    assert [a["badge_name"] for a in body["new_achievements"]] == ["getting-started"]

    resp = client.put(f"/api/education/{_ids['basics']}/progress", json={"percent_complete": 100})
    assert resp.json()["new_achievements"] == []

    resp = client.put(f"/api/education/{_ids['risk']}/progress", json={"completed": True})
    assert resp.json()["completed"] is True
    assert resp.json()["new_achievements"] == []

    with SessionLocal() as session:
        progress = (
            session.query(EducationProgress)
            .filter(EducationProgress.content_id == _ids["basics"])
            .one()
        )
        assert progress.percent_complete == 100.0
        assert progress.notes == "halfway"

    progress = client.get("/api/education/progress").json()
    assert {p["content_id"] for p in progress} == {_ids["basics"], _ids["risk"]}


def test_progress_above_tier_is_forbidden() -> None:
    _login("student")
    resp = client.put(f"/api/education/{_ids['options']}/progress", json={"percent_complete": 10})
    assert resp.status_code == 403


def test_achievement_endpoints() -> None:
    client.cookies.clear()
    badges = client.get("/api/achievement-badges").json()
    assert [(b["name"], b["threshold"]) for b in badges] == [
        ("getting-started", 1),
        ("knowledge-seeker", 5),
        ("trading-scholar", 10),
        ("market-master", 20),
    ]
    assert client.get("/api/user-achievements").status_code == 401

    _login("student")
    mine = client.get("/api/user-achievements").json()
    assert [a["badge_name"] for a in mine] == ["getting-started"]
    recent = client.get("/api/user-achievements/recent", params={"limit": 1}).json()
    assert len(recent) == 1


def test_admin_updates_and_deletes_content() -> None:
    _login("educator")
    resp = client.patch(f"/api/education/{_ids['options']}", json={"tier": "paid"})
    assert resp.status_code == 200
    assert resp.json()["tier"] == "paid"

    assert client.delete(f"/api/education/{_ids['options']}").status_code == 204
    assert client.get(f"/api/education/{_ids['options']}").status_code == 404
