from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import SuccessCard, User, UserAchievement
from portfolio_consultant.schemas.achievements import (
    BadgeRead,
    SuccessCardGenerate,
    SuccessCardRead,
    SuccessCardShare,
    UserAchievementRead,
)
from portfolio_consultant.services.achievements import BADGES, list_user_achievements
from portfolio_consultant.services.success_cards import (
    generate_success_card,
    list_success_cards,
    share_success_card,
)

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.get("/achievement-badges", response_model=List[BadgeRead])
def list_badges() -> List[BadgeRead]:
    return [
        BadgeRead(name=b.name, description=b.description, threshold=b.threshold)
        for b in BADGES
    ]


@router.get("/user-achievements", response_model=List[UserAchievementRead])
def list_my_achievements(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[UserAchievement]:
    return list_user_achievements(db, user.id)


@router.get("/user-achievements/recent", response_model=List[UserAchievementRead])
def list_my_recent_achievements(
    limit: int = Query(3, ge=1, le=20),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[UserAchievement]:
    return list_user_achievements(db, user.id)[:limit]


@router.get("/success-cards", response_model=List[SuccessCardRead])
def list_my_success_cards(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[SuccessCard]:
    return list_success_cards(db, user.id)


@router.post(
    "/success-cards/generate",
    response_model=SuccessCardRead,
    status_code=status.HTTP_201_CREATED,
)
def generate_card(
    payload: SuccessCardGenerate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> SuccessCard:
    try:
        return generate_success_card(db, user.id, payload.stock_alert_id, payload.target_hit)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.put("/success-cards/{card_id}/share", response_model=SuccessCardRead)
def share_card(
    card_id: int,
    payload: SuccessCardShare,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> SuccessCard:
    card = db.get(SuccessCard, card_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Success card not found."
        )
    if card.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only share your own success cards.",
        )
    try:
        return share_success_card(db, card, payload.platform)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


__all__ = ["router"]
