import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.orm import Session

from pizzeria.core.config import get_settings
from pizzeria.models import DiscountType, Reward, UserVoucher, VoucherStatus
from pizzeria.models.base import utcnow

from . import exceptions
from .points_service import PointsLedger

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
MAX_PERCENTAGE = Decimal("100")
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_PREFIXES = {
    DiscountType.PERCENTAGE: "PCT",
    DiscountType.DELIVERY_FEE: "SHIP",
    DiscountType.FIXED: "SAVE",
}


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def discount_for(
    discount_type: DiscountType | None,
    amount: Decimal | None,
    *,
    min_order_amount: Decimal | None,
    subtotal: Decimal,
    delivery_fee: Decimal = Decimal("0.00"),
) -> Decimal:
    """Discount a voucher or promo code yields; never more than what it applies to."""

    subtotal = Decimal(str(subtotal))
    delivery_fee = Decimal(str(delivery_fee))
    minimum = min_order_amount or Decimal("0")
    if subtotal < minimum:
        raise exceptions.ValidationError(
            f"Order subtotal must be at least {minimum.quantize(CENTS)} to use this discount",
            details={"min_order_amount": str(minimum.quantize(CENTS))},
        )

    amount = Decimal(str(amount or 0))
    if discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * min(amount, MAX_PERCENTAGE) / MAX_PERCENTAGE
    elif discount_type == DiscountType.DELIVERY_FEE:
        discount = min(delivery_fee, amount)
    else:
        discount = amount
    if discount_type != DiscountType.DELIVERY_FEE:
        discount = min(discount, subtotal)
    return max(discount, Decimal("0")).quantize(CENTS, rounding=ROUND_HALF_UP)


class VoucherService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.ledger = PointsLedger(db)

    def issue(self, *, user_id: int, reward_id: int, commit: bool = True) -> UserVoucher:
        """Spend points on a reward and hand out a single-use voucher."""

        reward = (
            self.db.query(Reward)
            .filter(Reward.id == reward_id, Reward.active == True)  # noqa: E712
            .first()
        )
        if reward is None:
            raise exceptions.NotFoundError("Reward not found or inactive")

        self.ledger.lock_balance(user_id)
        issued = (
            self.db.query(func.count(UserVoucher.id))
            .filter(UserVoucher.user_id == user_id, UserVoucher.reward_id == reward.id)
            .scalar()
        )
        max_uses = reward.max_uses_per_user or 1
        if issued >= max_uses:
            raise exceptions.ConflictError(
                f"You've already redeemed this reward {issued}/{max_uses} times",
                details={"issued": issued, "max_uses_per_user": max_uses},
            )

        self.ledger.redeem(
            user_id=user_id,
            points=reward.points_required,
            description=f"Redeemed reward: {reward.name}",
            commit=False,
        )

        validity_days = reward.voucher_validity_days or self.settings.VOUCHER_VALIDITY_DAYS
        discount_amount = reward.discount_amount or Decimal("0.00")
        discount_type = reward.discount_type or DiscountType.FIXED
        voucher = UserVoucher(
            user_id=user_id,
            reward_id=reward.id,
            voucher_code=self._generate_code(discount_amount, discount_type),
            discount_amount=discount_amount,
            discount_type=discount_type,
            min_order_amount=reward.min_order_amount or Decimal("0.00"),
            points_used=reward.points_required,
            status=VoucherStatus.ACTIVE,
            expires_at=utcnow() + timedelta(days=validity_days),
            title=reward.name,
            description=reward.usage_instructions or self._default_description(discount_amount, discount_type),
        )
        self.db.add(voucher)
        self.db.flush()
        if commit:
            self.db.commit()
            self.db.refresh(voucher)
        logger.info("Issued voucher %s to user %s for reward %s", voucher.voucher_code, user_id, reward.id)
        return voucher

    def validate(
        self,
        *,
        code: str,
        subtotal: Decimal,
        delivery_fee: Decimal = Decimal("0.00"),
        user_id: int | None = None,
        now: datetime | None = None,
    ) -> tuple[UserVoucher, Decimal]:
        """Check that a voucher can be applied and return the discount it yields."""

        voucher = self._get_by_code(code, user_id=user_id)
        self._ensure_usable(voucher, now or utcnow())
        return voucher, self.calculate_discount(voucher, subtotal=subtotal, delivery_fee=delivery_fee)

    def apply(
        self,
        *,
        code: str,
        order_id: int,
        user_id: int | None = None,
        now: datetime | None = None,
        commit: bool = True,
    ) -> UserVoucher:
        """Consume an active voucher against an order."""

        now = now or utcnow()
        voucher = self._get_by_code(code, user_id=user_id, for_update=True)
        try:
            self._ensure_usable(voucher, now)
        except exceptions.VoucherUnavailableError:
            if voucher.status == VoucherStatus.EXPIRED and commit:
                self.db.commit()
            raise

        voucher.status = VoucherStatus.USED
        voucher.used_at = now
        voucher.applied_to_order_id = order_id
        self.db.flush()
        if commit:
            self.db.commit()
        logger.info("Voucher %s applied to order %s", voucher.voucher_code, order_id)
        return voucher

    @staticmethod
    def calculate_discount(voucher: UserVoucher, *, subtotal: Decimal, delivery_fee: Decimal) -> Decimal:
        return discount_for(
            voucher.discount_type,
            voucher.discount_amount,
            min_order_amount=voucher.min_order_amount,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
        )

    def list_for_user(self, *, user_id: int, status: VoucherStatus | None = None) -> list[UserVoucher]:
        self.expire_stale(user_id=user_id)
        query = self.db.query(UserVoucher).filter(UserVoucher.user_id == user_id)
        if status is not None:
            query = query.filter(UserVoucher.status == status)
        return query.order_by(UserVoucher.created_at.desc(), UserVoucher.id.desc()).all()

    def expire_stale(self, *, now: datetime | None = None, user_id: int | None = None) -> int:
        query = self.db.query(UserVoucher).filter(
            UserVoucher.status == VoucherStatus.ACTIVE,
            UserVoucher.expires_at < (now or utcnow()),
        )
        if user_id is not None:
            query = query.filter(UserVoucher.user_id == user_id)
        expired = query.update({UserVoucher.status: VoucherStatus.EXPIRED}, synchronize_session=False)
        self.db.commit()
        if expired:
            logger.info("Marked %s vouchers as expired", expired)
        return expired

    def _get_by_code(self, code: str, *, user_id: int | None, for_update: bool = False) -> UserVoucher:
        normalized = (code or "").strip().upper()
        query = self.db.query(UserVoucher).filter(UserVoucher.voucher_code == normalized)
        if for_update:
            query = query.with_for_update()
        voucher = query.first()
        if voucher is None or (user_id is not None and voucher.user_id != user_id):
            raise exceptions.NotFoundError("Voucher not found")
        return voucher

    def _ensure_usable(self, voucher: UserVoucher, now: datetime) -> None:
        if voucher.status != VoucherStatus.ACTIVE:
            raise exceptions.VoucherUnavailableError(
                f"Voucher is {voucher.status.value}",
                details={"status": voucher.status.value},
            )
        if as_utc(now) > as_utc(voucher.expires_at):
            voucher.status = VoucherStatus.EXPIRED
            self.db.flush()
            raise exceptions.VoucherUnavailableError(
                "Voucher has expired",
                details={"status": VoucherStatus.EXPIRED.value},
            )

    def _generate_code(self, discount_amount: Decimal, discount_type: DiscountType) -> str:
        prefix = CODE_PREFIXES.get(discount_type, "SAVE")
        whole = int(Decimal(str(discount_amount)))
        for _ in range(10):
            suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(6))
            code = f"{prefix}{whole}-{suffix}"
            exists = (
                self.db.query(func.count(UserVoucher.id))
                .filter(UserVoucher.voucher_code == code)
                .scalar()
            )
            if not exists:
                return code
        raise exceptions.ServiceError("Failed to generate unique voucher code")

    @staticmethod
    def _default_description(amount: Decimal, discount_type: DiscountType) -> str:
        if discount_type == DiscountType.PERCENTAGE:
            return f"Save {format(amount.normalize(), 'f')}% on your order"
        if discount_type == DiscountType.DELIVERY_FEE:
            return f"Save up to ${amount.quantize(CENTS)} on delivery"
        return f"Save ${amount.quantize(CENTS)} on your order"
