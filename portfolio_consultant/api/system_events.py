from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import SystemEvent
from portfolio_consultant.schemas.system_events import (
    SystemEventRead,
    SystemEventsCleanupRequest,
    SystemEventsCleanupResponse,
)

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.get("/", response_model=List[SystemEventRead])
def list_system_events(
    level: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[SystemEvent]:
    """Return recent system events, most recent first."""

    query = db.query(SystemEvent)
    if level is not None:
        query = query.filter(SystemEvent.level == level.upper())
    if category is not None:
        query = query.filter(SystemEvent.category == category)
    if user_id is not None:
        query = query.filter(SystemEvent.user_id == user_id)

    return (
        query.order_by(SystemEvent.created_at.desc(), SystemEvent.id.desc())
        .limit(limit)
        .all()
    )


@router.post("/cleanup", response_model=SystemEventsCleanupResponse)
def cleanup_system_events(
    payload: SystemEventsCleanupRequest,
    db: Session = Depends(get_db),
) -> SystemEventsCleanupResponse:
    """Delete system events older than ``max_days``; 0 keeps everything."""

    if payload.max_days <= 0:
        return SystemEventsCleanupResponse(deleted=0, remaining=db.query(SystemEvent).count())

    cutoff = datetime.now(UTC) - payload.max_days_delta()
    stale = db.query(SystemEvent).filter(SystemEvent.created_at < cutoff)
    if payload.dry_run:
        deleted = stale.count()
    else:
        deleted = stale.delete(synchronize_session=False)
        db.commit()
    remaining = db.query(SystemEvent).count()
    return SystemEventsCleanupResponse(deleted=int(deleted), remaining=int(remaining))


__all__ = ["router"]
