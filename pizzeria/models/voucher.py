from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DECIMAL, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .enums import DiscountType, VoucherStatus, enum_values

if TYPE_CHECKING:  # pragma: no cover
    from .reward import Reward
    from .user import User


class UserVoucher(Base):
    __tablename__ = "user_vouchers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    reward_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True)
    voucher_code: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    discount_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType, name="discount_type", values_callable=enum_values, native_enum=False, length=32),
        default=DiscountType.FIXED,
    )
    min_order_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    points_used: Mapped[int] = mapped_column(Integer)
    status: Mapped[VoucherStatus] = mapped_column(
        Enum(VoucherStatus, name="voucher_status", values_callable=enum_values, native_enum=False, length=16),
        default=VoucherStatus.ACTIVE,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    applied_to_order_id: Mapped[Optional[int]] = mapped_column(ForeignKey("orders.id"), nullable=True)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship("User", back_populates="vouchers")
    reward: Mapped[Optional["Reward"]] = relationship("Reward")
