from decimal import Decimal
from typing import Optional

from sqlalchemy import DECIMAL, Boolean, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .enums import DiscountType, enum_values


class Reward(TimestampMixin, Base):
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(150))
    description: Mapped[str] = mapped_column(Text, default="")
    points_required: Mapped[int] = mapped_column(Integer, default=50)
    discount_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("5.00"))
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType, name="discount_type", values_callable=enum_values, native_enum=False, length=32),
        default=DiscountType.FIXED,
    )
    min_order_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    voucher_validity_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_uses_per_user: Mapped[int] = mapped_column(Integer, default=1)
    usage_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
