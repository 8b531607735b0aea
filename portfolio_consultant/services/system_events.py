from __future__ import annotations

import json
from typing import Any, Optional

from sqlalchemy.orm import Session

from portfolio_consultant.models import SystemEvent


def record_system_event(
    db: Session,
    *,
    level: str,
    category: str,
    message: str,
    user_id: Optional[int] = None,
    correlation_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    commit: bool = True,
) -> SystemEvent:
    """Persist a system event capturing important backend activity."""

    event = SystemEvent(
        level=level.upper(),
        category=category,
        message=message[:255],
        user_id=user_id,
        correlation_id=correlation_id,
        details=json.dumps(details, ensure_ascii=False, default=str) if details else None,
    )
    db.add(event)
    if commit:
        db.commit()
        db.refresh(event)
    else:
        db.flush()
    return event


__all__ = ["record_system_event"]
