from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pizzeria.core.config import get_settings
from pizzeria.core.dependencies import get_current_account, get_db
from pizzeria.models import OrderType, User, VoucherStatus
from pizzeria.schemas import VoucherRead, VoucherValidateRequest, VoucherValidateResponse
from pizzeria.services import VoucherService

router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@router.get("", response_model=list[VoucherRead])
def list_vouchers(
    status_filter: Optional[VoucherStatus] = Query(default=None, alias="status"),
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    vouchers = VoucherService(db).list_for_user(user_id=account.id, status=status_filter)
    return [VoucherRead.model_validate(voucher) for voucher in vouchers]


@router.post("/validate", response_model=VoucherValidateResponse)
def validate_voucher(
    payload: VoucherValidateRequest,
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    delivery_fee = get_settings().DELIVERY_FEE if payload.order_type == OrderType.DELIVERY else 0
    voucher, discount = VoucherService(db).validate(
        code=payload.code,
        subtotal=payload.subtotal,
        delivery_fee=delivery_fee,
        user_id=account.id,
    )
    return VoucherValidateResponse(valid=True, voucher=VoucherRead.model_validate(voucher), discount=discount)
