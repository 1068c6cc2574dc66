from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import ADMIN_ROLES, STAFF_ROLES, UserRole, enum_values

if TYPE_CHECKING:  # pragma: no cover
    from .order import Order
    from .points import PointsTransaction, UserPoints
    from .voucher import UserVoucher


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    supabase_user_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True, index=True)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=enum_values, native_enum=False, length=32),
        default=UserRole.CUSTOMER,
        server_default=UserRole.CUSTOMER.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    marketing_opt_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    points_balance: Mapped[Optional["UserPoints"]] = relationship(
        "UserPoints",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    points_transactions: Mapped[list["PointsTransaction"]] = relationship(
        "PointsTransaction",
        back_populates="user",
        passive_deletes=True,
    )
    vouchers: Mapped[list["UserVoucher"]] = relationship(
        "UserVoucher",
        back_populates="user",
        passive_deletes=True,
    )
    orders: Mapped[list["Order"]] = relationship("Order", back_populates="user")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def points(self) -> int:
        if self.points_balance is None:
            return 0
        return self.points_balance.points or 0
