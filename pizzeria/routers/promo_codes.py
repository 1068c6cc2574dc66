from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pizzeria.core.config import get_settings
from pizzeria.core.dependencies import get_db
from pizzeria.models import OrderType
from pizzeria.schemas import PromoCodeValidateRequest, PromoCodeValidateResponse
from pizzeria.services import PromoCodeService

router = APIRouter(prefix="/promo-codes", tags=["promo-codes"])


@router.post("/validate", response_model=PromoCodeValidateResponse)
def validate_promo_code(payload: PromoCodeValidateRequest, db: Session = Depends(get_db)):
    delivery_fee = get_settings().DELIVERY_FEE if payload.order_type == OrderType.DELIVERY else 0
    promo, discount = PromoCodeService(db).validate(
        code=payload.code,
        subtotal=payload.subtotal,
        delivery_fee=delivery_fee,
    )
    return PromoCodeValidateResponse(
        valid=True,
        code=promo.code,
        name=promo.name,
        description=promo.description,
        discount_amount=promo.discount_amount,
        discount_type=promo.discount_type,
        min_order_amount=promo.min_order_amount,
        discount=discount,
    )
