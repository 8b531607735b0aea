from __future__ import annotations

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.session import SessionLocal, engine
from portfolio_consultant.models import (
    AlertPreference,
    AlertTriggerEvent,
    StockAlert,
    User,
    UserNotification,
)
from portfolio_consultant.services.alert_triggers import (
    dispatch_alert_triggers,
    evaluate_alert_triggers,
    triggers_for_preference,
)

_ids: dict[str, int] = {}


def _user(session, username: str, tier: str, disabled: bool = False) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        name=username.title(),
        password_hash="x",
        tier=tier,
        disabled=disabled,
    )
    session.add(user)
    session.commit()
    return user


def _alert(price: float = 95.0) -> StockAlert:
    return StockAlert(
        symbol="AAPL",
        company_name="Apple",
        current_price=price,
        buy_zone_min=70.0,
        buy_zone_max=80.0,
        target1=100.0,
        target2=150.0,
        target3=200.0,
        technical_reasons=[],
    )


def setup_module() -> None:  # type: ignore[override]
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        alert = _alert()
        session.add(alert)
        session.commit()
        _ids["alert"] = alert.id

        for username, tier, disabled in (
            ("payer", "paid", False),
            ("freeloader", "free", False),
            ("gone", "premium", True),
        ):
            user = _user(session, username, tier, disabled)
            _ids[username] = user.id
            session.add(AlertPreference(user_id=user.id, stock_alert_id=alert.id))
        session.commit()


def test_target_band_is_ten_percent_either_side() -> None:
    pref = AlertPreference(user_id=1, stock_alert_id=1, target_one=True, target_two=True,
                           target_three=True)
    alert = _alert(price=90.0)
    alert.id = 1
    assert [t.trigger_type for t in triggers_for_preference(alert, pref)] == ["target1"]

    alert.current_price = 89.9
    assert triggers_for_preference(alert, pref) == []

    alert.current_price = 110.0
    assert [t.trigger_type for t in triggers_for_preference(alert, pref)] == ["target1"]


def test_disabled_target_flags_are_skipped() -> None:
    pref = AlertPreference(user_id=1, stock_alert_id=1, target_one=False, target_two=True,
                           target_three=True)
    alert = _alert(price=100.0)
    alert.id = 1
    assert triggers_for_preference(alert, pref) == []


def test_percent_and_custom_rules() -> None:
    pref = AlertPreference(
        user_id=7,
        stock_alert_id=1,
        target_one=False,
        target_two=False,
        target_three=False,
        percent_change=15.0,
        custom_target_price=96.0,
    )
    alert = _alert(price=95.0)
    alert.id = 1
    triggers = triggers_for_preference(alert, pref)
    assert [t.trigger_type for t in triggers] == ["percent", "custom"]
    assert triggers[0].message == "AAPL has increased by 18.8% from its buy zone."
    assert triggers[1].message == "AAPL has reached your custom target price of $96.00."
    assert all(t.user_id == 7 for t in triggers)

    pref.percent_change = 20.0
    pref.custom_target_price = 120.0
    assert triggers_for_preference(alert, pref) == []


def test_target_message_wording() -> None:
    pref = AlertPreference(user_id=1, stock_alert_id=1, target_one=True, target_two=True,
                           target_three=True)
    alert = _alert(price=100.0)
    alert.id = 1
    (trigger,) = triggers_for_preference(alert, pref)
    assert trigger.message == (
        "AAPL has reached its first target price of $100.00 and could be a great "
        "place to take some profits."
    )


def test_evaluation_skips_free_and_disabled_members() -> None:
    with SessionLocal() as session:
        alert = session.get(StockAlert, _ids["alert"])
        triggers = evaluate_alert_triggers(session, alert)
        assert {t.user_id for t in triggers} == {_ids["payer"]}
        assert [t.trigger_type for t in triggers] == ["target1"]
        # Pure: evaluating again yields the same result and writes nothing.
        assert evaluate_alert_triggers(session, alert) == triggers
        assert session.query(AlertTriggerEvent).count() == 0


def test_dispatch_delivers_each_trigger_once() -> None:
    with SessionLocal() as session:
        alert = session.get(StockAlert, _ids["alert"])
        delivered = dispatch_alert_triggers(session, alert)
        assert [(t.user_id, t.trigger_type) for t in delivered] == [
            (_ids["payer"], "target1")
        ]

        assert dispatch_alert_triggers(session, alert) == []
        assert session.query(AlertTriggerEvent).count() == 1

        notes = (
            session.query(UserNotification)
            .filter(UserNotification.user_id == _ids["payer"])
            .all()
        )
        assert len(notes) == 1
        assert notes[0].category == "target_approach"
        assert notes[0].important is True
        assert notes[0].related_id == alert.id


def test_dispatch_delivers_new_trigger_types_later() -> None:
    with SessionLocal() as session:
        alert = session.get(StockAlert, _ids["alert"])
        alert.current_price = 140.0
        session.commit()

        delivered = dispatch_alert_triggers(session, alert)
        assert [t.trigger_type for t in delivered] == ["target2"]
        assert session.query(AlertTriggerEvent).count() == 2
