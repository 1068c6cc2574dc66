from .account_service import AccountService
from .auth_service import AuthService
from .menu_service import MenuService
from .order_service import OrderService
from .payment_service import PaymentService
from .points_service import PointsLedger
from .printer_service import PrinterService
from .promo_code_service import PromoCodeService
from .reward_service import RewardService
from .voucher_service import VoucherService

__all__ = [
    "AccountService",
    "AuthService",
    "MenuService",
    "OrderService",
    "PaymentService",
    "PointsLedger",
    "PrinterService",
    "PromoCodeService",
    "RewardService",
    "VoucherService",
]
