"""Points ledger.

``user_points`` holds the spendable balance of an account and
``points_transactions`` its append-only history. Every write goes through
:meth:`PointsLedger._append`, which runs after the account's balance row has
been locked with ``SELECT ... FOR UPDATE`` so concurrent earn/redeem calls for
one account are applied one after another. The balance must always equal the
sum of the account's transaction points; :meth:`PointsLedger.reconcile`
detects and repairs rows where it does not.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pizzeria.core.config import get_settings
from pizzeria.models import PointsTransaction, PointsTransactionType, UserPoints
from pizzeria.models.base import utcnow

from . import exceptions

logger = logging.getLogger(__name__)

EARNING_TYPES = frozenset(
    {PointsTransactionType.EARNED, PointsTransactionType.BONUS, PointsTransactionType.SIGNUP}
)


@dataclass
class LedgerDrift:
    user_id: int
    recorded_points: int
    recorded_total_earned: int
    recorded_total_redeemed: int
    expected_points: int
    expected_total_earned: int
    expected_total_redeemed: int

    @property
    def has_drift(self) -> bool:
        return (
            self.recorded_points != self.expected_points
            or self.recorded_total_earned != self.expected_total_earned
            or self.recorded_total_redeemed != self.expected_total_redeemed
        )

    @property
    def difference(self) -> int:
        return self.expected_points - self.recorded_points


class PointsLedger:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def points_for_amount(self, amount: Decimal | None) -> int:
        if amount is None:
            return 0
        amount = Decimal(str(amount))
        if amount <= 0:
            return 0
        earned = (amount * self.settings.POINTS_PER_DOLLAR).to_integral_value(rounding=ROUND_DOWN)
        return int(earned)

    def lock_balance(self, user_id: int, *, create: bool = True) -> UserPoints | None:
        balance = (
            self.db.query(UserPoints)
            .filter(UserPoints.user_id == user_id)
            .with_for_update()
            .first()
        )
        if balance is not None or not create:
            return balance

        balance = UserPoints(user_id=user_id, points=0, total_earned=0, total_redeemed=0)
        self.db.add(balance)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise exceptions.ConflictError("Points balance is being updated, please retry") from exc
        return balance

    def get_balance(self, user_id: int) -> UserPoints:
        balance = self.db.query(UserPoints).filter(UserPoints.user_id == user_id).first()
        if balance is None:
            return UserPoints(user_id=user_id, points=0, total_earned=0, total_redeemed=0)
        return balance

    def history(self, user_id: int, *, limit: int | None = None) -> list[PointsTransaction]:
        query = (
            self.db.query(PointsTransaction)
            .filter(PointsTransaction.user_id == user_id)
            .order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def earn(
        self,
        *,
        user_id: int,
        order_id: int,
        amount: Decimal,
        description: str | None = None,
        commit: bool = True,
    ) -> PointsTransaction:
        """Award points for an order once; repeated calls return the first award."""

        points = self.points_for_amount(amount)
        if points <= 0:
            raise exceptions.ValidationError("Order amount does not earn any points")

        balance = self.lock_balance(user_id)
        existing = self._order_transaction(user_id, order_id, PointsTransactionType.EARNED)
        if existing is not None:
            logger.info("Points for order %s already awarded to user %s", order_id, user_id)
            return existing

        transaction = self._append(
            balance,
            kind=PointsTransactionType.EARNED,
            points=points,
            description=description or f"Order #{order_id}",
            order_id=order_id,
            order_amount=Decimal(str(amount)),
        )
        self._finish(commit)
        logger.info("Awarded %s points to user %s for order %s", points, user_id, order_id)
        return transaction

    def redeem(
        self,
        *,
        user_id: int,
        points: int,
        description: str,
        commit: bool = True,
    ) -> PointsTransaction:
        if points <= 0:
            raise exceptions.ValidationError("Points to redeem must be positive")

        balance = self.lock_balance(user_id)
        available = balance.points or 0
        if available < points:
            raise exceptions.InsufficientPointsError(
                f"Insufficient points. You have {available}, need {points}",
                details={"available": available, "required": points},
            )

        transaction = self._append(
            balance,
            kind=PointsTransactionType.REDEEMED,
            points=-points,
            description=description,
        )
        self._finish(commit)
        logger.info("Redeemed %s points from user %s", points, user_id)
        return transaction

    def award_bonus(
        self,
        *,
        user_id: int,
        points: int,
        description: str,
        kind: PointsTransactionType = PointsTransactionType.BONUS,
        commit: bool = True,
    ) -> PointsTransaction:
        if kind not in (PointsTransactionType.BONUS, PointsTransactionType.SIGNUP):
            raise exceptions.ValidationError(f"Unsupported bonus type: {kind.value}")
        if points <= 0:
            raise exceptions.ValidationError("Bonus points must be positive")

        balance = self.lock_balance(user_id)
        if kind == PointsTransactionType.SIGNUP:
            existing = (
                self.db.query(PointsTransaction)
                .filter(
                    PointsTransaction.user_id == user_id,
                    PointsTransaction.type == PointsTransactionType.SIGNUP,
                )
                .first()
            )
            if existing is not None:
                return existing

        transaction = self._append(balance, kind=kind, points=points, description=description)
        self._finish(commit)
        return transaction

    def adjust(
        self,
        *,
        user_id: int,
        delta: int,
        description: str,
        commit: bool = True,
    ) -> PointsTransaction:
        """Manual correction by staff; never drives the balance below zero."""

        if delta == 0:
            raise exceptions.ValidationError("Adjustment must change the balance")

        balance = self.lock_balance(user_id)
        available = balance.points or 0
        if available + delta < 0:
            raise exceptions.InsufficientPointsError(
                f"Adjustment would overdraw the balance of {available} points",
                details={"available": available, "requested": delta},
            )
        transaction = self._append(balance, kind=PointsTransactionType.ADJUSTMENT, points=delta, description=description)
        self._finish(commit)
        logger.info("Adjusted user %s points by %s: %s", user_id, delta, description)
        return transaction

    def reconcile(self, user_id: int, *, apply: bool = False, commit: bool = True) -> LedgerDrift:
        """Compare the stored balance with the transaction history."""

        if apply:
            balance = self.lock_balance(user_id)
        else:
            balance = self.get_balance(user_id)
        expected = self._expected_totals(user_ids=[user_id]).get(user_id, (0, 0))
        drift = self._drift(user_id, balance, expected)

        if apply and drift.has_drift:
            logger.warning(
                "Correcting points for user %s: %s -> %s (earned %s -> %s, redeemed %s -> %s)",
                user_id,
                drift.recorded_points,
                drift.expected_points,
                drift.recorded_total_earned,
                drift.expected_total_earned,
                drift.recorded_total_redeemed,
                drift.expected_total_redeemed,
            )
            balance.points = drift.expected_points
            balance.total_earned = drift.expected_total_earned
            balance.total_redeemed = drift.expected_total_redeemed
            self._finish(commit)
        return drift

    def audit(self) -> list[LedgerDrift]:
        expected = self._expected_totals()
        balances = {row.user_id: row for row in self.db.query(UserPoints).all()}
        drifts: list[LedgerDrift] = []
        for user_id in sorted(set(expected) | set(balances)):
            balance = balances.get(user_id) or UserPoints(
                user_id=user_id, points=0, total_earned=0, total_redeemed=0
            )
            drift = self._drift(user_id, balance, expected.get(user_id, (0, 0)))
            if drift.has_drift:
                drifts.append(drift)
        return drifts

    def _append(
        self,
        balance: UserPoints,
        *,
        kind: PointsTransactionType,
        points: int,
        description: str,
        order_id: int | None = None,
        order_amount: Decimal | None = None,
    ) -> PointsTransaction:
        now = utcnow()
        balance.points = (balance.points or 0) + points
        if points > 0:
            balance.total_earned = (balance.total_earned or 0) + points
            if kind in EARNING_TYPES:
                balance.last_earned_at = now
        else:
            balance.total_redeemed = (balance.total_redeemed or 0) - points
        balance.updated_at = now

        transaction = PointsTransaction(
            user_id=balance.user_id,
            order_id=order_id,
            type=kind,
            points=points,
            description=description,
            order_amount=order_amount,
            created_at=now,
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def _finish(self, commit: bool) -> None:
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def _order_transaction(
        self, user_id: int, order_id: int, kind: PointsTransactionType
    ) -> PointsTransaction | None:
        return (
            self.db.query(PointsTransaction)
            .filter(
                PointsTransaction.user_id == user_id,
                PointsTransaction.order_id == order_id,
                PointsTransaction.type == kind,
            )
            .first()
        )

    def _expected_totals(self, user_ids: list[int] | None = None) -> dict[int, tuple[int, int]]:
        earned = func.coalesce(
            func.sum(case((PointsTransaction.points > 0, PointsTransaction.points), else_=0)), 0
        )
        redeemed = func.coalesce(
            func.sum(case((PointsTransaction.points < 0, -PointsTransaction.points), else_=0)), 0
        )
        query = self.db.query(PointsTransaction.user_id, earned, redeemed).group_by(
            PointsTransaction.user_id
        )
        if user_ids is not None:
            query = query.filter(PointsTransaction.user_id.in_(user_ids))
        return {user_id: (int(total_earned), int(total_redeemed)) for user_id, total_earned, total_redeemed in query.all()}

    @staticmethod
    def _drift(user_id: int, balance: UserPoints, expected: tuple[int, int]) -> LedgerDrift:
        expected_earned, expected_redeemed = expected
        return LedgerDrift(
            user_id=user_id,
            recorded_points=balance.points or 0,
            recorded_total_earned=balance.total_earned or 0,
            recorded_total_redeemed=balance.total_redeemed or 0,
            expected_points=expected_earned - expected_redeemed,
            expected_total_earned=expected_earned,
            expected_total_redeemed=expected_redeemed,
        )
