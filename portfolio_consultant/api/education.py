from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user, get_current_user_optional
from portfolio_consultant.core.security import require_admin
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import EducationContent, EducationProgress, User
from portfolio_consultant.schemas.achievements import ProgressResult, UserAchievementRead
from portfolio_consultant.schemas.education import (
    EducationContentCreate,
    EducationContentRead,
    EducationContentUpdate,
    ProgressRead,
    ProgressUpdate,
)
from portfolio_consultant.services import education as education_service

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


def _caller_tier(user: User | None) -> Optional[str]:
    if user is None:
        return None
    # Admins review every piece of content.
    return "premium" if user.is_admin else user.tier


def _get_content_or_404(db: Session, content_id: int) -> EducationContent:
    content = db.get(EducationContent, content_id)
    if content is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Education content not found."
        )
    return content


@router.get("/", response_model=List[EducationContentRead])
def list_education_content(
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    q: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
    user: User | None = Depends(get_current_user_optional),
) -> List[EducationContent]:
    """Content visible to the caller's tier; anonymous callers see free content."""

    return education_service.list_content(
        db, _caller_tier(user), category=category, level=level, q=q
    )


@router.get("/progress", response_model=List[ProgressRead])
def list_my_progress(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[EducationProgress]:
    return education_service.list_progress(db, user.id)


@router.get("/{content_id}", response_model=EducationContentRead)
def get_education_content(
    content_id: int,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_current_user_optional),
) -> EducationContent:
    content = _get_content_or_404(db, content_id)
    if not education_service.can_read(content, _caller_tier(user)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This content requires the {content.tier} tier.",
        )
    return content


@router.put("/{content_id}/progress", response_model=ProgressResult)
def update_my_progress(
    content_id: int,
    payload: ProgressUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ProgressResult:
    content = _get_content_or_404(db, content_id)
    if not education_service.can_read(content, _caller_tier(user)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This content requires the {content.tier} tier.",
        )
    progress, awarded = education_service.record_progress(
        db, user.id, content, payload.model_dump(exclude_unset=True)
    )
    return ProgressResult(
        progress_id=progress.id,
        completed=progress.completed,
        new_achievements=[UserAchievementRead.model_validate(a) for a in awarded],
    )


@router.post("/", response_model=EducationContentRead, status_code=status.HTTP_201_CREATED)
def create_education_content(
    payload: EducationContentCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> EducationContent:
    content = EducationContent(**payload.model_dump())
    db.add(content)
    db.commit()
    db.refresh(content)
    return content


@router.patch("/{content_id}", response_model=EducationContentRead)
def update_education_content(
    content_id: int,
    payload: EducationContentUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> EducationContent:
    content = _get_content_or_404(db, content_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(content, field, value)
    db.add(content)
    db.commit()
    db.refresh(content)
    return content


@router.delete(
    "/{content_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_education_content(
    content_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    content = _get_content_or_404(db, content_id)
    db.delete(content)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
