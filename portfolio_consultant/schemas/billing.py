from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

BillableTier = Literal["paid", "premium", "mentorship"]


class CheckoutRequest(BaseModel):
    tier: Optional[BillableTier] = None
    price_id: Optional[str] = None
    coupon_code: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

    @model_validator(mode="after")
    def _require_tier_or_price(self) -> "CheckoutRequest":
        if not self.tier and not self.price_id:
            raise ValueError("Either tier or price_id is required.")
        return self


class CheckoutResponse(BaseModel):
    session_id: str
    url: Optional[str] = None


class SubscriptionSummary(BaseModel):
    id: str
    status: str
    tier: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class SubscriptionChange(BaseModel):
    tier: BillableTier


class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool = False
    type: Optional[str] = None


class CouponBase(BaseModel):
    code: str = Field(..., min_length=3, max_length=64)
    description: str = Field(..., min_length=5)
    discount_percentage: float = Field(..., ge=1, le=100)
    discount_amount: Optional[float] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    max_uses: Optional[int] = Field(None, gt=0)
    is_active: bool = True


class CouponCreate(CouponBase):
    pass


class CouponUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=5)
    discount_percentage: Optional[float] = Field(None, ge=1, le=100)
    discount_amount: Optional[float] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    max_uses: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class CouponRead(CouponBase):
    id: int
    valid_from: datetime
    uses_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class CouponValidateResponse(BaseModel):
    valid: bool
    code: str
    discount_percentage: Optional[float] = None
    discount_amount: Optional[float] = None
    reason: Optional[str] = None


class DiscountBase(BaseModel):
    user_id: int
    discount_percentage: float = Field(..., ge=1, le=100)
    discount_amount: Optional[float] = Field(None, gt=0)
    reason: str = Field(..., min_length=1, max_length=64)
    notes: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True


class DiscountCreate(DiscountBase):
    pass


class DiscountUpdate(BaseModel):
    discount_percentage: Optional[float] = Field(None, ge=1, le=100)
    discount_amount: Optional[float] = Field(None, gt=0)
    reason: Optional[str] = Field(None, min_length=1, max_length=64)
    notes: Optional[str] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class DiscountRead(DiscountBase):
    id: int
    valid_from: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "BillableTier",
    "CheckoutRequest",
    "CheckoutResponse",
    "SubscriptionSummary",
    "SubscriptionChange",
    "WebhookAck",
    "CouponCreate",
    "CouponUpdate",
    "CouponRead",
    "CouponValidateRequest",
    "CouponValidateResponse",
    "DiscountCreate",
    "DiscountUpdate",
    "DiscountRead",
]
