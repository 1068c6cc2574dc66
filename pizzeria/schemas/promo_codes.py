from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pizzeria.models.enums import DiscountType, OrderType

from .rewards import check_percentage


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class PromoCodeBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    discount_amount: Decimal = Field(..., gt=0)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    min_order_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    max_uses: int = Field(default=0, ge=0)
    is_active: bool = True
    starts_at: datetime
    ends_at: datetime

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def check_window(self) -> "PromoCodeBase":
        check_percentage(self.discount_type, self.discount_amount)
        if _as_utc(self.ends_at) <= _as_utc(self.starts_at):
            raise ValueError("ends_at must be after starts_at")
        return self


class PromoCodeCreate(PromoCodeBase):
    pass


class PromoCodeUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=32)
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = None
    discount_amount: Optional[Decimal] = Field(default=None, gt=0)
    discount_type: Optional[DiscountType] = None
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value is not None else None

    @model_validator(mode="after")
    def limit_percentage(self) -> "PromoCodeUpdate":
        check_percentage(self.discount_type, self.discount_amount)
        return self


class PromoCodeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    description: Optional[str] = None
    discount_amount: Decimal
    discount_type: DiscountType
    min_order_amount: Decimal
    max_uses: int
    current_uses: int
    is_active: bool
    starts_at: datetime
    ends_at: datetime
    created_at: datetime
    updated_at: datetime


class PromoCodeValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    order_type: OrderType = OrderType.PICKUP


class PromoCodeValidateResponse(BaseModel):
    valid: bool
    code: str
    name: str
    description: Optional[str] = None
    discount_amount: Decimal
    discount_type: DiscountType
    min_order_amount: Decimal
    discount: Optional[Decimal] = None
