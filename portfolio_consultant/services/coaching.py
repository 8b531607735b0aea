from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Dict, List, Mapping, Tuple

from sqlalchemy.orm import Session

from portfolio_consultant.core.time_utils import to_utc, utc_now
from portfolio_consultant.models import (
    CoachingSession,
    GroupCoachingSession,
    GroupSessionRegistration,
)
from portfolio_consultant.services.notifications import create_notification

SLOT_MINUTES = 30
# Coach hours in UTC: pre-market and post-market windows, end exclusive.
COACH_WINDOWS: Tuple[Tuple[int, int], ...] = ((8, 11), (16, 19))
MAX_AVAILABILITY_DAYS = 62


class SessionFullError(Exception):
    """Raised when registering for a group session at capacity."""


def book_session(db: Session, user_id: int, values: Mapping[str, Any]) -> CoachingSession:
    when = to_utc(values["date"])
    if when <= utc_now():
        raise ValueError("Coaching sessions must be booked in the future.")

    session = CoachingSession(
        user_id=user_id,
        date=when,
        duration_minutes=int(values.get("duration_minutes") or 60),
        notes=values.get("notes"),
        status="scheduled",
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    create_notification(
        db,
        user_id=user_id,
        category="coaching",
        title="Coaching session booked",
        message=f"Your coaching session is scheduled for {when:%Y-%m-%d %H:%M} UTC.",
        link_url="/coaching",
        related_id=session.id,
        icon="calendar",
    )
    return session


def list_sessions(db: Session, user_id: int) -> List[CoachingSession]:
    return (
        db.query(CoachingSession)
        .filter(CoachingSession.user_id == user_id)
        .order_by(CoachingSession.date.asc())
        .all()
    )


def cancel_session(db: Session, session: CoachingSession) -> CoachingSession:
    if session.status == "completed":
        raise ValueError("Completed sessions cannot be cancelled.")
    session.status = "cancelled"
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def _day_slots(day: date) -> List[datetime]:
    slots: List[datetime] = []
    for start_hour, end_hour in COACH_WINDOWS:
        cursor = datetime.combine(day, time(start_hour), tzinfo=UTC)
        end = datetime.combine(day, time(end_hour), tzinfo=UTC)
        while cursor < end:
            slots.append(cursor)
            cursor += timedelta(minutes=SLOT_MINUTES)
    return slots


def coach_availability(
    db: Session, start: datetime, end: datetime
) -> List[Dict[str, Any]]:
    """List 30-minute weekday slots between ``start`` and ``end`` (inclusive days).

    A slot is unavailable when it starts inside a non-cancelled session.
    """

    start = to_utc(start)
    end = to_utc(end)
    if end < start:
        raise ValueError("End date must not be before start date.")
    if (end.date() - start.date()).days > MAX_AVAILABILITY_DAYS:
        raise ValueError(f"Date range must not exceed {MAX_AVAILABILITY_DAYS} days.")

    window_start = datetime.combine(start.date(), time.min, tzinfo=UTC)
    window_end = datetime.combine(end.date(), time.max, tzinfo=UTC)
    booked = [
        (to_utc(s.date), to_utc(s.date) + timedelta(minutes=s.duration_minutes))
        for s in db.query(CoachingSession)
        .filter(
            CoachingSession.status != "cancelled",
            CoachingSession.date >= window_start - timedelta(days=1),
            CoachingSession.date <= window_end,
        )
        .all()
    ]

    slots: List[Dict[str, Any]] = []
    day = start.date()
    while day <= end.date():
        if day.weekday() < 5:
            for slot in _day_slots(day):
                taken = any(s_start <= slot < s_end for s_start, s_end in booked)
                slots.append({"date": slot, "available": not taken})
        day += timedelta(days=1)
    return slots


def list_group_sessions(db: Session, *, upcoming_only: bool = False) -> List[GroupCoachingSession]:
    query = db.query(GroupCoachingSession)
    if upcoming_only:
        query = query.filter(
            GroupCoachingSession.status == "scheduled",
            GroupCoachingSession.date > utc_now(),
        )
    return query.order_by(GroupCoachingSession.date.asc()).all()


def create_group_session(db: Session, values: Mapping[str, Any]) -> GroupCoachingSession:
    data = dict(values)
    data["date"] = to_utc(data["date"])
    session = GroupCoachingSession(**data, participants=0, status="scheduled")
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def register_for_group_session(
    db: Session, user_id: int, session_id: int
) -> Tuple[GroupSessionRegistration, bool]:
    """Register ``user_id``; returns ``(registration, created)``.

    An existing registration is returned unchanged.
    """

    session = db.get(GroupCoachingSession, session_id)
    if session is None:
        raise LookupError("Group coaching session not found.")

    existing = (
        db.query(GroupSessionRegistration)
        .filter(
            GroupSessionRegistration.user_id == user_id,
            GroupSessionRegistration.session_id == session_id,
        )
        .one_or_none()
    )
    if existing is not None:
        return existing, False

    if session.participants >= session.max_participants:
        raise SessionFullError("Session is already full.")

    registration = GroupSessionRegistration(
        user_id=user_id,
        session_id=session_id,
        payment_status="paid" if session.price <= 0 else "pending",
    )
    session.participants += 1
    db.add(registration)
    db.add(session)
    db.commit()
    db.refresh(registration)
    return registration, True


def list_group_registrations(
    db: Session, user_id: int
) -> List[Tuple[GroupCoachingSession, GroupSessionRegistration]]:
    rows = (
        db.query(GroupCoachingSession, GroupSessionRegistration)
        .join(
            GroupSessionRegistration,
            GroupSessionRegistration.session_id == GroupCoachingSession.id,
        )
        .filter(GroupSessionRegistration.user_id == user_id)
        .order_by(GroupCoachingSession.date.asc())
        .all()
    )
    return [(session, registration) for session, registration in rows]


__all__ = [
    "COACH_WINDOWS",
    "SessionFullError",
    "SLOT_MINUTES",
    "book_session",
    "cancel_session",
    "coach_availability",
    "create_group_session",
    "list_group_registrations",
    "list_group_sessions",
    "list_sessions",
    "register_for_group_session",
]
