from .base import Base
from .enums import (
    ADMIN_ROLES,
    STAFF_ROLES,
    DiscountType,
    OrderStatus,
    OrderType,
    PaymentStatus,
    PointsTransactionType,
    UserRole,
    VoucherStatus,
)
from .menu import Category, MenuItem
from .order import Order, OrderItem
from .points import PointsTransaction, UserPoints
from .printer import PrinterConfig
from .promo_code import PromoCode
from .reward import Reward
from .user import User
from .voucher import UserVoucher

__all__ = [
    "Base",
    "Category",
    "MenuItem",
    "Order",
    "OrderItem",
    "PointsTransaction",
    "PrinterConfig",
    "PromoCode",
    "Reward",
    "User",
    "UserPoints",
    "UserVoucher",
    "ADMIN_ROLES",
    "STAFF_ROLES",
    "DiscountType",
    "OrderStatus",
    "OrderType",
    "PaymentStatus",
    "PointsTransactionType",
    "UserRole",
    "VoucherStatus",
]
