import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from pizzeria.core.config import get_settings
from pizzeria.models import (
    DiscountType,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentStatus,
    User,
)
from pizzeria.models.base import utcnow

from . import exceptions
from .points_service import PointsLedger
from .promo_code_service import PromoCodeService
from .voucher_service import VoucherService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}
KITCHEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.READY)


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.ledger = PointsLedger(db)
        self.vouchers = VoucherService(db)
        self.promo_codes = PromoCodeService(db)

    def create_order(
        self,
        *,
        user: User | None,
        order_type: OrderType,
        items: Iterable[dict],
        phone: str,
        address: str | None = None,
        tip: Decimal = Decimal("0.00"),
        voucher_code: str | None = None,
        promo_code: str | None = None,
        special_instructions: str | None = None,
    ) -> Order:
        """Price an order server-side and persist it, consuming the voucher or promo code if one is given."""

        if order_type == OrderType.DELIVERY and not (address or "").strip():
            raise exceptions.ValidationError("Delivery orders require an address")
        if tip is not None and Decimal(tip) < 0:
            raise exceptions.ValidationError("Tip cannot be negative")
        if voucher_code and promo_code:
            raise exceptions.ValidationError("Use either a voucher or a promo code, not both")

        order_items, subtotal = self._build_items(items)
        delivery_fee = self.settings.DELIVERY_FEE if order_type == OrderType.DELIVERY else Decimal("0.00")

        voucher = None
        promo = None
        discount_type = None
        amount = Decimal("0.00")
        if voucher_code:
            if user is None:
                raise exceptions.AuthenticationError("Sign in to use a voucher")
            voucher, amount = self.vouchers.validate(
                code=voucher_code,
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                user_id=user.id,
            )
            discount_type = voucher.discount_type
        elif promo_code:
            promo, amount = self.promo_codes.validate(code=promo_code, subtotal=subtotal, delivery_fee=delivery_fee)
            discount_type = promo.discount_type
        if discount_type == DiscountType.DELIVERY_FEE:
            discount, fee_discount = Decimal("0.00"), amount
        else:
            discount, fee_discount = amount, Decimal("0.00")

        taxable = max(subtotal - discount, Decimal("0.00"))
        tax = _money(taxable * self.settings.TAX_RATE)
        delivery_fee = _money(delivery_fee - fee_discount)
        tip = _money(tip or Decimal("0.00"))
        total = _money(subtotal - discount + tax + delivery_fee + tip)

        order = Order(
            user_id=user.id if user is not None else None,
            status=OrderStatus.PENDING,
            order_type=order_type,
            subtotal=subtotal,
            discount=_money(discount + fee_discount),
            tax=tax,
            delivery_fee=delivery_fee,
            tip=tip,
            total=total,
            payment_status=PaymentStatus.PENDING,
            voucher_code=voucher.voucher_code if voucher is not None else None,
            promo_code=promo.code if promo is not None else None,
            phone=phone.strip(),
            address=address,
            special_instructions=special_instructions,
            created_at=utcnow(),
            items=order_items,
        )
        self.db.add(order)
        self.db.flush()

        if voucher is not None:
            self.vouchers.apply(code=voucher.voucher_code, order_id=order.id, user_id=user.id, commit=False)
        if promo is not None:
            self.promo_codes.redeem(promo, commit=False)

        self.db.commit()
        self.db.refresh(order)
        logger.info(
            "Order %s created for %s: total %s (%s items)",
            order.id,
            f"user {order.user_id}" if order.user_id else "guest",
            order.total,
            len(order_items),
        )
        return order

    def get_order(self, order_id: int, *, user: User | None = None) -> Order:
        order = (
            self.db.query(Order)
            .options(selectinload(Order.items).selectinload(OrderItem.menu_item))
            .filter(Order.id == order_id)
            .first()
        )
        if order is None:
            raise exceptions.NotFoundError("Order not found")
        if user is not None and not user.is_staff and order.user_id != user.id:
            raise exceptions.NotFoundError("Order not found")
        return order

    def list_orders(
        self,
        *,
        user: User,
        page: int = 1,
        size: int = 20,
        status: Optional[OrderStatus] = None,
    ) -> Tuple[int, list[Order]]:
        query = self.db.query(Order).options(selectinload(Order.items).selectinload(OrderItem.menu_item))
        if not user.is_staff:
            query = query.filter(Order.user_id == user.id)
        if status is not None:
            query = query.filter(Order.status == status)
        total = query.count()
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return total, orders

    def kitchen_queue(self) -> list[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items).selectinload(OrderItem.menu_item))
            .filter(Order.status.in_(KITCHEN_STATUSES))
            .order_by(Order.created_at.asc(), Order.id.asc())
            .all()
        )

    def update_status(self, *, order_id: int, status: OrderStatus) -> Order:
        """Move an order along the kitchen workflow; completion awards points in the same transaction."""

        order = self.db.query(Order).filter(Order.id == order_id).with_for_update().first()
        if order is None:
            raise exceptions.NotFoundError("Order not found")
        if status == order.status:
            return self.get_order(order.id)
        if status not in STATUS_TRANSITIONS[order.status]:
            raise exceptions.ConflictError(
                f"Cannot move order from {order.status.value} to {status.value}",
                details={"from": order.status.value, "to": status.value},
            )

        now = utcnow()
        order.status = status
        if status == OrderStatus.PROCESSING:
            order.processed_at = now
        elif status == OrderStatus.COMPLETED:
            order.completed_at = now
            self._award_points(order)
        self.db.flush()
        self.db.commit()
        logger.info("Order %s moved to %s", order.id, status.value)
        return self.get_order(order.id)

    def _award_points(self, order: Order) -> None:
        if order.user_id is None:
            return
        if self.ledger.points_for_amount(order.total) <= 0:
            return
        self.ledger.earn(
            user_id=order.user_id,
            order_id=order.id,
            amount=order.total,
            description=f"Order #{order.id}",
            commit=False,
        )

    def _build_items(self, items: Iterable[dict]) -> tuple[list[OrderItem], Decimal]:
        requested = list(items)
        if not requested:
            raise exceptions.ValidationError("Order must contain at least one item")

        ids = {item["menu_item_id"] for item in requested}
        menu = {
            menu_item.id: menu_item
            for menu_item in self.db.query(MenuItem).filter(MenuItem.id.in_(ids)).all()
        }

        order_items: list[OrderItem] = []
        subtotal = Decimal("0.00")
        for item in requested:
            menu_item = menu.get(item["menu_item_id"])
            if menu_item is None or not menu_item.is_available:
                raise exceptions.ValidationError(
                    "Menu item is not available",
                    details={"menu_item_id": item["menu_item_id"]},
                )
            quantity = int(item.get("quantity") or 1)
            if quantity <= 0:
                raise exceptions.ValidationError("Quantity must be positive")
            price = _money(menu_item.base_price)
            subtotal += price * quantity
            order_items.append(
                OrderItem(
                    menu_item_id=menu_item.id,
                    quantity=quantity,
                    price=price,
                    options=item.get("options"),
                    special_instructions=item.get("special_instructions"),
                )
            )
        return order_items, _money(subtotal)
