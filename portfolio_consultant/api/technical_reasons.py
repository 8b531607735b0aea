from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from portfolio_consultant.core.security import require_admin
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import TechnicalReason, User
from portfolio_consultant.schemas.stock_alerts import (
    TechnicalReasonCreate,
    TechnicalReasonRead,
)
from portfolio_consultant.services.stock_alerts import (
    create_technical_reason,
    list_technical_reasons,
)

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.get("/", response_model=List[TechnicalReasonRead])
def list_reasons(db: Session = Depends(get_db)) -> List[TechnicalReason]:
    return list_technical_reasons(db)


@router.post("/", response_model=TechnicalReasonRead, status_code=status.HTTP_201_CREATED)
def create_reason(
    payload: TechnicalReasonCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> TechnicalReason:
    try:
        return create_technical_reason(db, payload.name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


__all__ = ["router"]
