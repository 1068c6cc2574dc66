import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pizzeria.models import DiscountType, PromoCode
from pizzeria.models.base import utcnow

from . import exceptions
from .voucher_service import MAX_PERCENTAGE, as_utc, discount_for

logger = logging.getLogger(__name__)


class PromoCodeService:
    def __init__(self, db: Session):
        self.db = db

    def list_codes(self) -> list[PromoCode]:
        return self.db.query(PromoCode).order_by(PromoCode.created_at.desc(), PromoCode.id.desc()).all()

    def get_code(self, promo_id: int) -> PromoCode:
        promo = self.db.query(PromoCode).filter(PromoCode.id == promo_id).first()
        if promo is None:
            raise exceptions.NotFoundError("Promo code not found")
        return promo

    def create_code(self, *, data: dict) -> PromoCode:
        promo = PromoCode(**data, current_uses=0)
        self.db.add(promo)
        self._flush_unique(promo.code)
        self.db.commit()
        self.db.refresh(promo)
        logger.info("Created promo code %s", promo.code)
        return promo

    def update_code(self, *, promo_id: int, data: dict) -> PromoCode:
        promo = self.get_code(promo_id)
        discount_type = data.get("discount_type", promo.discount_type)
        discount_amount = data.get("discount_amount", promo.discount_amount)
        if discount_type == DiscountType.PERCENTAGE and discount_amount > MAX_PERCENTAGE:
            raise exceptions.ValidationError(
                "Percentage discounts cannot exceed 100",
                details={"discount_amount": str(discount_amount)},
            )
        starts_at = as_utc(data.get("starts_at", promo.starts_at))
        ends_at = as_utc(data.get("ends_at", promo.ends_at))
        if ends_at <= starts_at:
            raise exceptions.ValidationError("Promo code must end after it starts")

        for key, value in data.items():
            setattr(promo, key, value)
        self._flush_unique(promo.code)
        self.db.commit()
        self.db.refresh(promo)
        return promo

    def delete_code(self, *, promo_id: int) -> None:
        promo = self.get_code(promo_id)
        code = promo.code
        self.db.delete(promo)
        self.db.commit()
        logger.info("Deleted promo code %s", code)

    def validate(
        self,
        *,
        code: str,
        subtotal: Decimal | None = None,
        delivery_fee: Decimal = Decimal("0.00"),
        now: datetime | None = None,
    ) -> tuple[PromoCode, Decimal | None]:
        """Check that a promo code is live and, given a subtotal, price its discount."""

        promo = self._find_usable(code, now or utcnow())
        if subtotal is None:
            return promo, None
        discount = discount_for(
            promo.discount_type,
            promo.discount_amount,
            min_order_amount=promo.min_order_amount,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
        )
        return promo, discount

    def redeem(self, promo: PromoCode, *, commit: bool = True) -> None:
        """Count one use, refusing it when the code ran out in the meantime."""

        updated = (
            self.db.query(PromoCode)
            .filter(
                PromoCode.id == promo.id,
                or_(PromoCode.max_uses == 0, PromoCode.current_uses < PromoCode.max_uses),
            )
            .update({PromoCode.current_uses: PromoCode.current_uses + 1}, synchronize_session=False)
        )
        if not updated:
            raise self._exhausted()
        self.db.flush()
        self.db.refresh(promo)
        if commit:
            self.db.commit()
        logger.info("Promo code %s used (%s/%s)", promo.code, promo.current_uses, promo.max_uses or "unlimited")

    def _find_usable(self, code: str, now: datetime) -> PromoCode:
        normalized = (code or "").strip().upper()
        promo = self.db.query(PromoCode).filter(func.upper(PromoCode.code) == normalized).first()
        now = as_utc(now)
        if (
            promo is None
            or not promo.is_active
            or as_utc(promo.starts_at) > now
            or as_utc(promo.ends_at) < now
        ):
            raise exceptions.ValidationError(
                "This promo code is not valid or has expired",
                details={"code": normalized},
            )
        if promo.max_uses and promo.current_uses >= promo.max_uses:
            raise self._exhausted()
        return promo

    def _flush_unique(self, code: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise exceptions.ConflictError(
                "A promo code with this code already exists", details={"code": code}
            ) from exc

    @staticmethod
    def _exhausted() -> exceptions.ValidationError:
        return exceptions.ValidationError("This promo code has reached its maximum number of uses")
