from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import DECIMAL, JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .enums import OrderStatus, OrderType, PaymentStatus, enum_values

if TYPE_CHECKING:  # pragma: no cover
    from .menu import MenuItem
    from .user import User


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=enum_values, native_enum=False, length=16),
        default=OrderStatus.PENDING,
        index=True,
    )
    order_type: Mapped[OrderType] = mapped_column(
        Enum(OrderType, name="order_type", values_callable=enum_values, native_enum=False, length=16)
    )
    subtotal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    discount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    tax: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    delivery_fee: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    tip: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=enum_values, native_enum=False, length=16),
        default=PaymentStatus.PENDING,
    )
    payment_intent_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    voucher_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    promo_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    phone: Mapped[str] = mapped_column(String(32))
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[Optional["User"]] = relationship("User", back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    options: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship("MenuItem")

    @property
    def name(self) -> str | None:
        return self.menu_item.name if self.menu_item is not None else None
