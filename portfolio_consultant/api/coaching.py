from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.core.security import require_admin, require_tier
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import CoachingSession, GroupCoachingSession, User
from portfolio_consultant.schemas.coaching import (
    AvailabilitySlot,
    CoachingSessionCreate,
    CoachingSessionRead,
    GroupRegistrationDetail,
    GroupRegistrationRead,
    GroupSessionCreate,
    GroupSessionRead,
)
from portfolio_consultant.services import coaching as coaching_service

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.get("/", response_model=List[CoachingSessionRead])
def list_my_sessions(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[CoachingSession]:
    return coaching_service.list_sessions(db, user.id)


@router.post("/", response_model=CoachingSessionRead, status_code=status.HTTP_201_CREATED)
def book_coaching_session(
    payload: CoachingSessionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_tier("mentorship")),
) -> CoachingSession:
    try:
        return coaching_service.book_session(db, user.id, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/availability", response_model=List[AvailabilitySlot])
def read_availability(
    start: datetime = Query(...),
    end: datetime = Query(...),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> List[AvailabilitySlot]:
    try:
        slots = coaching_service.coach_availability(db, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [AvailabilitySlot(**slot) for slot in slots]


@router.post("/{session_id}/cancel", response_model=CoachingSessionRead)
def cancel_coaching_session(
    session_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CoachingSession:
    session = db.get(CoachingSession, session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Coaching session not found."
        )
    if session.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only cancel your own sessions.",
        )
    try:
        return coaching_service.cancel_session(db, session)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/group", response_model=List[GroupSessionRead])
def list_group_sessions(db: Session = Depends(get_db)) -> List[GroupCoachingSession]:
    return coaching_service.list_group_sessions(db)


@router.get("/group/upcoming", response_model=List[GroupSessionRead])
def list_upcoming_group_sessions(db: Session = Depends(get_db)) -> List[GroupCoachingSession]:
    return coaching_service.list_group_sessions(db, upcoming_only=True)


@router.get("/group/registrations", response_model=List[GroupRegistrationDetail])
def list_my_group_registrations(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[GroupRegistrationDetail]:
    return [
        GroupRegistrationDetail(
            session=GroupSessionRead.model_validate(session),
            registration=GroupRegistrationRead.model_validate(registration),
        )
        for session, registration in coaching_service.list_group_registrations(db, user.id)
    ]


@router.post(
    "/group",
    response_model=GroupSessionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_group_session(
    payload: GroupSessionCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> GroupCoachingSession:
    return coaching_service.create_group_session(db, payload.model_dump())


@router.post("/group/{session_id}/register", response_model=GroupRegistrationRead)
def register_for_group_session(
    session_id: int,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        registration, created = coaching_service.register_for_group_session(
            db, user.id, session_id
        )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except coaching_service.SessionFullError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return registration


__all__ = ["router"]
