from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.core.security import require_tier
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import PortfolioItem, StockAlert, User
from portfolio_consultant.schemas.portfolio import (
    PortfolioItemCreate,
    PortfolioItemDetail,
    PortfolioItemRead,
    PortfolioMetrics,
    PortfolioStats,
    PositionPerformance,
    SellRequest,
)
from portfolio_consultant.schemas.stock_alerts import StockAlertRead
from portfolio_consultant.services import portfolio as portfolio_service

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


def _detail(item: PortfolioItem, alert: StockAlert | None) -> PortfolioItemDetail:
    payload = PortfolioItemDetail.model_validate(item)
    if alert is not None:
        payload.stock_alert = StockAlertRead.model_validate(alert)
    performance = portfolio_service.position_performance(item, alert)
    if performance is not None:
        payload.performance = PositionPerformance(**performance)
    return payload


@router.get("/", response_model=List[PortfolioItemDetail])
def list_portfolio(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[PortfolioItemDetail]:
    """Return the caller's positions, newest first, with alert and P&L."""

    return [
        _detail(item, alert)
        for item, alert in portfolio_service.list_items_with_alerts(db, user.id)
    ]


@router.post("/", response_model=PortfolioItemRead, status_code=status.HTTP_201_CREATED)
def add_portfolio_item(
    payload: PortfolioItemCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_tier("paid")),
) -> PortfolioItem:
    try:
        return portfolio_service.create_item(db, user.id, payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/stats", response_model=PortfolioStats)
def read_portfolio_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PortfolioStats:
    return PortfolioStats(**portfolio_service.portfolio_stats(db, user.id))


@router.get("/metrics", response_model=PortfolioMetrics)
def read_portfolio_metrics(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PortfolioMetrics:
    return PortfolioMetrics(**portfolio_service.portfolio_metrics(db, user.id))


@router.put("/{item_id}/sell", response_model=PortfolioItemRead)
def sell_portfolio_item(
    item_id: int,
    payload: SellRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PortfolioItem:
    item = db.get(PortfolioItem, item_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Portfolio item not found."
        )
    if item.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only sell your own positions.",
        )
    try:
        return portfolio_service.sell_item(db, item, payload.sold_price)
    except portfolio_service.ItemAlreadySoldError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


__all__ = ["router"]
