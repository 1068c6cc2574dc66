from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_current_account, get_db, get_optional_account, require_staff
from pizzeria.models import OrderStatus, User
from pizzeria.schemas import OrderCreate, OrderListResponse, OrderRead, OrderStatusUpdate, Pagination
from pizzeria.services import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    account: User | None = Depends(get_optional_account),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    order = service.create_order(
        user=account,
        order_type=payload.order_type,
        items=[item.model_dump() for item in payload.items],
        phone=payload.phone,
        address=payload.address,
        tip=payload.tip,
        voucher_code=payload.voucher_code,
        promo_code=payload.promo_code,
        special_instructions=payload.special_instructions,
    )
    return OrderRead.model_validate(order)


@router.get("", response_model=OrderListResponse)
def list_orders(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    total, orders = service.list_orders(user=account, page=page, size=size, status=status_filter)
    return OrderListResponse(
        pagination=Pagination(page=page, size=size, total=total),
        items=[OrderRead.model_validate(order) for order in orders],
    )


@router.get("/kitchen", response_model=list[OrderRead])
def kitchen_queue(
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    return [OrderRead.model_validate(order) for order in service.kitchen_queue()]


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: int,
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    return OrderRead.model_validate(service.get_order(order_id, user=account))


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    order = service.update_status(order_id=order_id, status=payload.status)
    return OrderRead.model_validate(order)
