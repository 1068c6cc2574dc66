from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pizzeria.models.enums import DiscountType, OrderType, VoucherStatus

MAX_PERCENTAGE = Decimal("100")


def check_percentage(discount_type: Optional[DiscountType], discount_amount: Optional[Decimal]) -> None:
    if discount_type == DiscountType.PERCENTAGE and discount_amount is not None and discount_amount > MAX_PERCENTAGE:
        raise ValueError("percentage discounts cannot exceed 100")


class RewardBase(BaseModel):
    name: str = Field(..., max_length=150)
    description: str = ""
    points_required: int = Field(default=50, gt=0)
    discount_amount: Decimal = Field(default=Decimal("5.00"), ge=0)
    discount_type: DiscountType = DiscountType.FIXED
    min_order_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    voucher_validity_days: Optional[int] = Field(default=None, gt=0)
    max_uses_per_user: int = Field(default=1, gt=0)
    usage_instructions: Optional[str] = None
    active: bool = True

    @model_validator(mode="after")
    def limit_percentage(self) -> "RewardBase":
        check_percentage(self.discount_type, self.discount_amount)
        return self


class RewardCreate(RewardBase):
    pass


class RewardUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=150)
    description: Optional[str] = None
    points_required: Optional[int] = Field(default=None, gt=0)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    discount_type: Optional[DiscountType] = None
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0)
    voucher_validity_days: Optional[int] = Field(default=None, gt=0)
    max_uses_per_user: Optional[int] = Field(default=None, gt=0)
    usage_instructions: Optional[str] = None
    active: Optional[bool] = None

    @model_validator(mode="after")
    def limit_percentage(self) -> "RewardUpdate":
        check_percentage(self.discount_type, self.discount_amount)
        return self


class RewardRead(RewardBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


class VoucherRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    voucher_code: str
    reward_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    discount_amount: Decimal
    discount_type: DiscountType
    min_order_amount: Decimal
    points_used: int
    status: VoucherStatus
    expires_at: datetime
    used_at: Optional[datetime] = None
    applied_to_order_id: Optional[int] = None
    created_at: datetime


class RedeemResponse(BaseModel):
    voucher: VoucherRead
    points_remaining: int


class VoucherValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    subtotal: Decimal = Field(..., ge=0)
    order_type: OrderType = OrderType.PICKUP


class VoucherValidateResponse(BaseModel):
    valid: bool
    voucher: VoucherRead
    discount: Decimal
