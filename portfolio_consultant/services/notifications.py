from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from portfolio_consultant.models import User, UserNotification

CATEGORIES = (
    "stock_alert",
    "target_approach",
    "education",
    "article",
    "coaching",
    "billing",
    "system",
)


def create_notification(
    db: Session,
    *,
    user_id: int,
    category: str,
    title: str,
    message: str,
    link_url: Optional[str] = None,
    related_id: Optional[int] = None,
    icon: Optional[str] = None,
    important: bool = False,
    commit: bool = True,
) -> UserNotification:
    if category not in CATEGORIES:
        raise ValueError(f"Unknown notification category: {category}")

    notification = UserNotification(
        user_id=user_id,
        category=category,
        title=title,
        message=message,
        link_url=link_url,
        related_id=related_id,
        icon=icon,
        important=important,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    return notification


def notify_users(
    db: Session,
    users: Iterable[User],
    *,
    category: str,
    title: str,
    message: str,
    link_url: Optional[str] = None,
    related_id: Optional[int] = None,
    icon: Optional[str] = None,
    important: bool = False,
) -> int:
    """Fan a notification out to ``users`` in a single transaction."""

    count = 0
    for user in users:
        create_notification(
            db,
            user_id=user.id,
            category=category,
            title=title,
            message=message,
            link_url=link_url,
            related_id=related_id,
            icon=icon,
            important=important,
            commit=False,
        )
        count += 1
    db.commit()
    return count


def list_notifications(
    db: Session,
    user_id: int,
    *,
    limit: Optional[int] = None,
    unread_only: bool = False,
    category: Optional[str] = None,
) -> List[UserNotification]:
    query = db.query(UserNotification).filter(UserNotification.user_id == user_id)
    if unread_only:
        query = query.filter(UserNotification.read.is_(False))
    if category is not None:
        query = query.filter(UserNotification.category == category)
    query = query.order_by(UserNotification.created_at.desc(), UserNotification.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def notification_stats(db: Session, user_id: int) -> Dict[str, object]:
    rows = (
        db.query(UserNotification.category, func.count(UserNotification.id))
        .filter(
            UserNotification.user_id == user_id,
            UserNotification.read.is_(False),
        )
        .group_by(UserNotification.category)
        .all()
    )
    counts = {category: int(count) for category, count in rows}
    return {"total_unread": sum(counts.values()), "category_counts": counts}


def mark_all_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(UserNotification)
        .filter(
            UserNotification.user_id == user_id,
            UserNotification.read.is_(False),
        )
        .update({UserNotification.read: True}, synchronize_session=False)
    )
    db.commit()
    return int(updated)


__all__ = [
    "CATEGORIES",
    "create_notification",
    "list_notifications",
    "mark_all_read",
    "notification_stats",
    "notify_users",
]
