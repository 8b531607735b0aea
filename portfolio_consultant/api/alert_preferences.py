from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.core.tiers import has_feature
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import AlertPreference, User
from portfolio_consultant.schemas.alert_preferences import (
    AlertPreferenceRead,
    AlertPreferenceUpdate,
    AlertPreferenceUpsert,
)
from portfolio_consultant.services import alert_preferences as prefs_service

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


def _get_own_preference(db: Session, pref_id: int, user: User) -> AlertPreference:
    pref = db.get(AlertPreference, pref_id)
    if pref is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Alert preference not found."
        )
    if pref.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own alert preferences.",
        )
    return pref


@router.get("/", response_model=List[AlertPreferenceRead])
def list_alert_preferences(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[AlertPreference]:
    return prefs_service.list_preferences(db, user.id)


@router.get("/stock/{stock_alert_id}", response_model=AlertPreferenceRead)
def get_alert_preference_for_stock(
    stock_alert_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> AlertPreference:
    pref = prefs_service.get_preference(db, user.id, stock_alert_id)
    if pref is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Alert preference not found."
        )
    return pref


@router.post("/", response_model=AlertPreferenceRead)
def upsert_alert_preference(
    payload: AlertPreferenceUpsert,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> AlertPreference:
    """Create or replace the caller's preference for one stock alert."""

    if not (user.is_admin or has_feature(user.tier, "custom_notifications")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Upgrade to Premium to customize alert notifications.",
        )
    try:
        pref, created = prefs_service.upsert_preference(db, user.id, payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return pref


@router.put("/{pref_id}", response_model=AlertPreferenceRead)
def update_alert_preference(
    pref_id: int,
    payload: AlertPreferenceUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> AlertPreference:
    pref = _get_own_preference(db, pref_id, user)
    return prefs_service.update_preference(db, pref, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{pref_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_alert_preference(
    pref_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    pref = _get_own_preference(db, pref_id, user)
    db.delete(pref)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
