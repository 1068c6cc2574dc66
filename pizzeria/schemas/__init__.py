from .auth import GoogleAuthResponse, LoginRequest, RegisterRequest, TokenResponse
from .common import ErrorResponse, MessageResponse, Pagination
from .menu import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    MenuCategory,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
)
from .orders import OrderCreate, OrderItemCreate, OrderItemRead, OrderListResponse, OrderRead, OrderStatusUpdate
from .payments import PaymentIntentRequest, PaymentIntentResponse, WebhookResponse
from .points import (
    LedgerAuditResponse,
    LedgerDriftRead,
    PointsAdjustRequest,
    PointsBalanceRead,
    PointsHistoryResponse,
    PointsTransactionRead,
)
from .printer import PrinterConfigCreate, PrinterConfigRead, PrintRequest, PrintResponse
from .promo_codes import (
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeUpdate,
    PromoCodeValidateRequest,
    PromoCodeValidateResponse,
)
from .rewards import (
    RedeemResponse,
    RewardCreate,
    RewardRead,
    RewardUpdate,
    VoucherRead,
    VoucherValidateRequest,
    VoucherValidateResponse,
)
from .user import UserAdminUpdate, UserListResponse, UserProfileUpdate, UserRead

__all__ = [
    "CategoryCreate",
    "CategoryRead",
    "CategoryUpdate",
    "ErrorResponse",
    "GoogleAuthResponse",
    "LedgerAuditResponse",
    "LedgerDriftRead",
    "LoginRequest",
    "MenuCategory",
    "MenuItemCreate",
    "MenuItemRead",
    "MenuItemUpdate",
    "MessageResponse",
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemRead",
    "OrderListResponse",
    "OrderRead",
    "OrderStatusUpdate",
    "Pagination",
    "PaymentIntentRequest",
    "PaymentIntentResponse",
    "PointsAdjustRequest",
    "PointsBalanceRead",
    "PointsHistoryResponse",
    "PointsTransactionRead",
    "PrintRequest",
    "PrintResponse",
    "PromoCodeCreate",
    "PromoCodeRead",
    "PromoCodeUpdate",
    "PromoCodeValidateRequest",
    "PromoCodeValidateResponse",
    "PrinterConfigCreate",
    "PrinterConfigRead",
    "RedeemResponse",
    "RegisterRequest",
    "RewardCreate",
    "RewardRead",
    "RewardUpdate",
    "TokenResponse",
    "UserAdminUpdate",
    "UserListResponse",
    "UserProfileUpdate",
    "UserRead",
    "VoucherRead",
    "VoucherValidateRequest",
    "VoucherValidateResponse",
    "WebhookResponse",
]
