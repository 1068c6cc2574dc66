from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pizzeria.models.enums import OrderStatus, OrderType, PaymentStatus

from .common import Pagination


class OrderItemCreate(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, gt=0, le=100)
    options: Optional[dict[str, Any]] = None
    special_instructions: Optional[str] = Field(default=None, max_length=500)


class OrderCreate(BaseModel):
    order_type: OrderType = OrderType.PICKUP
    items: list[OrderItemCreate] = Field(..., min_length=1)
    phone: str = Field(..., min_length=7, max_length=32)
    address: Optional[str] = Field(default=None, max_length=255)
    tip: Decimal = Field(default=Decimal("0.00"), ge=0)
    voucher_code: Optional[str] = Field(default=None, max_length=32)
    promo_code: Optional[str] = Field(default=None, max_length=32)
    special_instructions: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def require_delivery_address(self) -> "OrderCreate":
        if self.order_type == OrderType.DELIVERY and not (self.address or "").strip():
            raise ValueError("address is required for delivery orders")
        return self


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    name: Optional[str] = None
    quantity: int
    price: Decimal
    options: Optional[dict[str, Any]] = None
    special_instructions: Optional[str] = None


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    status: OrderStatus
    order_type: OrderType
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    delivery_fee: Decimal
    tip: Decimal
    total: Decimal
    payment_status: PaymentStatus
    payment_intent_id: Optional[str] = None
    voucher_code: Optional[str] = None
    promo_code: Optional[str] = None
    phone: str
    address: Optional[str] = None
    special_instructions: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: list[OrderItemRead]


class OrderListResponse(BaseModel):
    pagination: Pagination
    items: list[OrderRead]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
