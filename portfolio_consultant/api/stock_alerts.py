from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.core.security import require_admin
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import StockAlert, User
from portfolio_consultant.schemas.stock_alerts import (
    AlertTriggerRead,
    PriceUpdate,
    PriceUpdateResult,
    StockAlertCreate,
    StockAlertRead,
    StockAlertUpdate,
    TargetBuckets,
)
from portfolio_consultant.services import stock_alerts as alerts_service
from portfolio_consultant.services.alert_triggers import dispatch_alert_triggers
from portfolio_consultant.services.live_updates import (
    publish_alert_trigger,
    publish_stock_update,
)

# ruff: noqa: B008  # FastAPI dependency injection pattern

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_alert_or_404(db: Session, alert_id: int) -> StockAlert:
    alert = db.get(StockAlert, alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Stock alert not found."
        )
    return alert


def _buckets(raw: alerts_service.TargetBuckets) -> TargetBuckets:
    return TargetBuckets(
        **{
            name: [StockAlertRead.model_validate(a) for a in alerts]
            for name, alerts in raw.items()
        }
    )


@router.get("/", response_model=List[StockAlertRead])
def list_stock_alerts(db: Session = Depends(get_db)) -> List[StockAlert]:
    return alerts_service.list_alerts(db)


@router.get("/buy-zone", response_model=List[StockAlertRead])
def list_buy_zone_alerts(db: Session = Depends(get_db)) -> List[StockAlert]:
    return alerts_service.alerts_in_buy_zone(db)


@router.get("/targets", response_model=TargetBuckets)
def list_alerts_nearing_targets(db: Session = Depends(get_db)) -> TargetBuckets:
    """Open alerts within 95% of their next target, bucketed by target."""

    return _buckets(alerts_service.alerts_nearing_targets(db))


@router.get("/closed", response_model=List[StockAlertRead])
def list_closed_alerts(db: Session = Depends(get_db)) -> List[StockAlert]:
    return alerts_service.closed_alerts(db)


@router.get("/high-risk-reward", response_model=List[StockAlertRead])
def list_high_risk_reward_alerts(db: Session = Depends(get_db)) -> List[StockAlert]:
    return alerts_service.high_risk_reward_alerts(db)


@router.get("/hit-targets", response_model=TargetBuckets)
def list_alerts_hitting_targets(db: Session = Depends(get_db)) -> TargetBuckets:
    return _buckets(alerts_service.alerts_hitting_targets(db))


@router.get("/{alert_id}", response_model=StockAlertRead)
def get_stock_alert(alert_id: int, db: Session = Depends(get_db)) -> StockAlert:
    return _get_alert_or_404(db, alert_id)


@router.post("/", response_model=StockAlertRead, status_code=status.HTTP_201_CREATED)
def create_stock_alert(
    payload: StockAlertCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> StockAlert:
    try:
        return alerts_service.create_alert(db, payload.model_dump())
    except alerts_service.AlertValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.patch("/{alert_id}", response_model=StockAlertRead)
def update_stock_alert(
    alert_id: int,
    payload: StockAlertUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> StockAlert:
    alert = _get_alert_or_404(db, alert_id)
    try:
        return alerts_service.update_alert(db, alert, payload.model_dump(exclude_unset=True))
    except alerts_service.AlertValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete(
    "/{alert_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_stock_alert(
    alert_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    alert = _get_alert_or_404(db, alert_id)
    db.delete(alert)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{alert_id}/price", response_model=PriceUpdateResult)
def update_stock_alert_price(
    alert_id: int,
    payload: PriceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> PriceUpdateResult:
    """Record a market price, deliver new triggers and broadcast both."""

    alert = _get_alert_or_404(db, alert_id)
    alert = alerts_service.apply_price_update(db, alert, payload.current_price)
    delivered = dispatch_alert_triggers(db, alert)

    alert_read = StockAlertRead.model_validate(alert)
    publish_stock_update(alert_read.model_dump(mode="json"))
    for trigger in delivered:
        publish_alert_trigger(trigger.to_dict())

    logger.info(
        "Stock alert price updated",
        extra={
            "extra": {
                "correlation_id": getattr(request.state, "correlation_id", None),
                "stock_alert_id": alert.id,
                "price": alert.current_price,
                "status": alert.status,
                "triggers": len(delivered),
            }
        },
    )
    return PriceUpdateResult(
        alert=alert_read,
        triggers=[AlertTriggerRead(**t.to_dict()) for t in delivered],
    )


__all__ = ["router"]
