from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import User, UserNotification
from portfolio_consultant.schemas.notifications import NotificationRead, NotificationStats
from portfolio_consultant.services import notifications as notifications_service

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


def _get_own_notification(db: Session, notification_id: int, user: User) -> UserNotification:
    notification = db.get(UserNotification, notification_id)
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found."
        )
    if notification.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own notifications.",
        )
    return notification


@router.get("/", response_model=List[NotificationRead])
def list_my_notifications(
    limit: Optional[int] = Query(None, ge=1, le=500),
    unread: bool = Query(False),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[UserNotification]:
    return notifications_service.list_notifications(
        db, user.id, limit=limit, unread_only=unread, category=category
    )


@router.get("/stats", response_model=NotificationStats)
def read_notification_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationStats:
    return NotificationStats(**notifications_service.notification_stats(db, user.id))


@router.post("/read-all", response_model=dict)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict:
    return {"updated": notifications_service.mark_all_read(db, user.id)}


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UserNotification:
    notification = _get_own_notification(db, notification_id, user)
    notification.read = True
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    notification = _get_own_notification(db, notification_id, user)
    db.delete(notification)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
