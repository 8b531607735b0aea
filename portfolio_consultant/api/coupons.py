from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.core.security import require_admin
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import Coupon, Discount, User
from portfolio_consultant.schemas.billing import (
    CouponCreate,
    CouponRead,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidateResponse,
    DiscountCreate,
    DiscountRead,
    DiscountUpdate,
)
from portfolio_consultant.services import coupons as coupons_service

# ruff: noqa: B008  # FastAPI dependency injection pattern

coupons_router = APIRouter()
discounts_router = APIRouter()


def _get_coupon_or_404(db: Session, coupon_id: int) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if coupon is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found.")
    return coupon


def _get_discount_or_404(db: Session, discount_id: int) -> Discount:
    discount = db.get(Discount, discount_id)
    if discount is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discount not found.")
    return discount


@coupons_router.post("/validate", response_model=CouponValidateResponse)
def validate_coupon(
    payload: CouponValidateRequest,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> CouponValidateResponse:
    code = coupons_service.normalize_code(payload.code)
    coupon = coupons_service.get_coupon_by_code(db, code)
    valid, reason = coupons_service.check_coupon(coupon)
    if not valid or coupon is None:
        return CouponValidateResponse(valid=False, code=code, reason=reason)
    return CouponValidateResponse(
        valid=True,
        code=coupon.code,
        discount_percentage=coupon.discount_percentage,
        discount_amount=coupon.discount_amount,
    )


@coupons_router.get("/", response_model=List[CouponRead])
def list_coupons(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> List[Coupon]:
    return coupons_service.list_coupons(db)


@coupons_router.post("/", response_model=CouponRead, status_code=status.HTTP_201_CREATED)
def create_coupon(
    payload: CouponCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Coupon:
    try:
        return coupons_service.create_coupon(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@coupons_router.patch("/{coupon_id}", response_model=CouponRead)
def update_coupon(
    coupon_id: int,
    payload: CouponUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Coupon:
    coupon = _get_coupon_or_404(db, coupon_id)
    try:
        return coupons_service.update_coupon(db, coupon, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@coupons_router.delete(
    "/{coupon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    coupon = _get_coupon_or_404(db, coupon_id)
    db.delete(coupon)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@discounts_router.get("/me", response_model=List[DiscountRead])
def list_my_discounts(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[Discount]:
    return coupons_service.active_discounts(db, user.id)


@discounts_router.get("/", response_model=List[DiscountRead])
def list_discounts(
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> List[Discount]:
    return coupons_service.list_discounts(db, user_id)


@discounts_router.post("/", response_model=DiscountRead, status_code=status.HTTP_201_CREATED)
def create_discount(
    payload: DiscountCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Discount:
    try:
        return coupons_service.create_discount(db, payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@discounts_router.patch("/{discount_id}", response_model=DiscountRead)
def update_discount(
    discount_id: int,
    payload: DiscountUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Discount:
    discount = _get_discount_or_404(db, discount_id)
    try:
        return coupons_service.update_discount(
            db, discount, payload.model_dump(exclude_unset=True)
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@discounts_router.delete(
    "/{discount_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_discount(
    discount_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Response:
    discount = _get_discount_or_404(db, discount_id)
    db.delete(discount)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["coupons_router", "discounts_router"]
