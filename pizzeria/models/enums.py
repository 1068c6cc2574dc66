from enum import Enum


def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class UserRole(str, Enum):
    CUSTOMER = "customer"
    EMPLOYEE = "employee"
    KITCHEN = "kitchen"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


STAFF_ROLES = frozenset(
    {UserRole.EMPLOYEE, UserRole.KITCHEN, UserRole.MANAGER, UserRole.ADMIN, UserRole.SUPER_ADMIN}
)
ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


class PointsTransactionType(str, Enum):
    EARNED = "earned"
    REDEEMED = "redeemed"
    BONUS = "bonus"
    SIGNUP = "signup"
    ADJUSTMENT = "adjustment"


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    DELIVERY_FEE = "delivery_fee"


class VoucherStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class OrderType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
