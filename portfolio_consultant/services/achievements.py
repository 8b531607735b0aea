from __future__ import annotations

from dataclasses import dataclass
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio_consultant.models import EducationProgress, UserAchievement


@dataclass(frozen=True)
class Badge:
    name: str
    description: str
    threshold: int


BADGES: tuple[Badge, ...] = (
    Badge("getting-started", "Complete your first lesson", 1),
    Badge("knowledge-seeker", "Complete 5 lessons", 5),
    Badge("trading-scholar", "Complete 10 lessons", 10),
    Badge("market-master", "Complete 20 lessons", 20),
)


def completed_content_count(db: Session, user_id: int) -> int:
    return (
        db.query(EducationProgress)
        .filter(
            EducationProgress.user_id == user_id,
            EducationProgress.completed.is_(True),
        )
        .count()
    )


def list_user_achievements(db: Session, user_id: int) -> List[UserAchievement]:
    return (
        db.query(UserAchievement)
        .filter(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
        .all()
    )


def check_for_new_achievements(db: Session, user_id: int) -> List[UserAchievement]:
    """Award every badge whose threshold the user has now reached.

    Each badge is awarded at most once per user.
    """

    completed = completed_content_count(db, user_id)
    owned = {
        name
        for (name,) in db.query(UserAchievement.badge_name)
        .filter(UserAchievement.user_id == user_id)
        .all()
    }

    awarded: List[UserAchievement] = []
    for badge in BADGES:
        if completed < badge.threshold or badge.name in owned:
            continue
        achievement = UserAchievement(
            user_id=user_id,
            badge_name=badge.name,
            description=badge.description,
        )
        db.add(achievement)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            continue
        db.refresh(achievement)
        awarded.append(achievement)
    return awarded


__all__ = [
    "BADGES",
    "Badge",
    "check_for_new_achievements",
    "completed_content_count",
    "list_user_achievements",
]
