from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from portfolio_consultant.core.tiers import visible_content_tiers
from portfolio_consultant.core.time_utils import utc_now
from portfolio_consultant.models import EducationContent, EducationProgress, UserAchievement
from portfolio_consultant.services.achievements import check_for_new_achievements


def list_content(
    db: Session,
    tier: Optional[str],
    *,
    category: Optional[str] = None,
    level: Optional[str] = None,
    q: Optional[str] = None,
) -> List[EducationContent]:
    """Content readable at ``tier`` (None means anonymous), newest first."""

    query = db.query(EducationContent).filter(
        EducationContent.tier.in_(visible_content_tiers(tier))
    )
    if category:
        query = query.filter(EducationContent.category == category)
    if level:
        query = query.filter(EducationContent.level == level)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                EducationContent.title.ilike(pattern),
                EducationContent.description.ilike(pattern),
                EducationContent.category.ilike(pattern),
            )
        )
    return query.order_by(EducationContent.created_at.desc(), EducationContent.id.desc()).all()


def can_read(content: EducationContent, tier: Optional[str]) -> bool:
    return content.tier in visible_content_tiers(tier)


def list_progress(db: Session, user_id: int) -> List[EducationProgress]:
    return (
        db.query(EducationProgress)
        .filter(EducationProgress.user_id == user_id)
        .order_by(EducationProgress.last_accessed_at.desc())
        .all()
    )


def record_progress(
    db: Session,
    user_id: int,
    content: EducationContent,
    values: Mapping[str, Any],
) -> Tuple[EducationProgress, List[UserAchievement]]:
    """Upsert the user's progress on ``content``.

    Reaching 100% marks the content completed. Completing content runs the
    achievement check and returns any badges newly awarded.
    """

    progress = (
        db.query(EducationProgress)
        .filter(
            EducationProgress.user_id == user_id,
            EducationProgress.content_id == content.id,
        )
        .one_or_none()
    )
    if progress is None:
        progress = EducationProgress(user_id=user_id, content_id=content.id)

    was_completed = bool(progress.completed)
    percent = float(values.get("percent_complete") or 0.0)
    completed = values.get("completed")
    if completed is None:
        completed = was_completed or percent >= 100.0
    if completed:
        percent = 100.0

    progress.percent_complete = percent
    progress.completed = bool(completed)
    if values.get("notes") is not None:
        progress.notes = values["notes"]
    progress.last_accessed_at = utc_now()

    db.add(progress)
    db.commit()
    db.refresh(progress)

    new_achievements: List[UserAchievement] = []
    if progress.completed and not was_completed:
        new_achievements = check_for_new_achievements(db, user_id)
    return progress, new_achievements


__all__ = ["can_read", "list_content", "list_progress", "record_progress"]
