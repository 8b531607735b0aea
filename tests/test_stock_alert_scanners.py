from __future__ import annotations

from fastapi.testclient import TestClient

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.main import app
from portfolio_consultant.models import StockAlert
from portfolio_consultant.services.stock_alerts import nearing_target_buckets

client = TestClient(app)


def _alert(symbol: str, price: float, status: str = "active") -> StockAlert:
    return StockAlert(
        symbol=symbol,
        company_name=f"{symbol} Inc",
        current_price=price,
        buy_zone_min=80.0,
        buy_zone_max=90.0,
        target1=100.0,
        target2=110.0,
        target3=120.0,
        technical_reasons=[],
        status=status,
    )


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        session.add_all(
            [
                _alert("ZONE", 85.0),
                _alert("EDGE", 95.0),
                _alert("JUST", 94.9),
                _alert("LOW", 70.0),
                _alert("HIT2", 115.0),
                _alert("DONE", 119.0, status="closed"),
            ]
        )
        session.commit()


def _symbols(rows: list[dict]) -> set[str]:
    return {row["symbol"] for row in rows}


def test_nearing_target_window_is_95_percent_inclusive() -> None:
    assert nearing_target_buckets(_alert("A", 95.0)) == ["target1"]
    assert nearing_target_buckets(_alert("B", 94.9)) == []
    assert nearing_target_buckets(_alert("C", 100.0)) == []


def test_later_targets_require_earlier_ones() -> None:
    # 105 is above target1 and within 95% of target2.
    assert nearing_target_buckets(_alert("D", 105.0)) == ["target2"]
    # 89 is inside the buy zone, so target1 is not "approaching" yet.
    alert = _alert("E", 89.0)
    alert.target1 = 92.0
    assert nearing_target_buckets(alert) == []


def test_non_positive_target_never_matches() -> None:
    alert = _alert("F", 95.0)
    alert.target1 = 0.0
    assert nearing_target_buckets(alert) == []


def test_targets_endpoint_buckets_open_alerts() -> None:
    resp = client.get("/api/stock-alerts/targets")
    assert resp.status_code == 200
    body = resp.json()
    assert _symbols(body["target1"]) == {"EDGE"}
    assert _symbols(body["target2"]) == set()
    assert _symbols(body["target3"]) == {"HIT2"}


def test_buy_zone_and_high_risk_reward() -> None:
    assert _symbols(client.get("/api/stock-alerts/buy-zone").json()) == {"ZONE"}
    assert _symbols(client.get("/api/stock-alerts/high-risk-reward").json()) == {"LOW"}


def test_hit_targets_counts_every_reached_level() -> None:
    body = client.get("/api/stock-alerts/hit-targets").json()
    assert _symbols(body["target1"]) == {"HIT2", "DONE"}
    assert _symbols(body["target2"]) == {"HIT2", "DONE"}
    assert _symbols(body["target3"]) == set()


def test_closed_alerts() -> None:
    assert _symbols(client.get("/api/stock-alerts/closed").json()) == {"DONE"}
