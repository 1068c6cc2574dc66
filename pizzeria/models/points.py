from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DECIMAL, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, utcnow
from .enums import PointsTransactionType, enum_values

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


class UserPoints(TimestampMixin, Base):
    __tablename__ = "user_points"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    points: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_earned: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_redeemed: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_earned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="points_balance")


class PointsTransaction(Base):
    __tablename__ = "points_transactions"
    __table_args__ = (
        UniqueConstraint("user_id", "order_id", "type", name="uq_points_transactions_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    order_id: Mapped[int | None] = mapped_column(ForeignKey("orders.id"), nullable=True, index=True)
    type: Mapped[PointsTransactionType] = mapped_column(
        Enum(
            PointsTransactionType,
            name="points_transaction_type",
            values_callable=enum_values,
            native_enum=False,
            length=32,
        )
    )
    points: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(String(255))
    order_amount: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship("User", back_populates="points_transactions")
