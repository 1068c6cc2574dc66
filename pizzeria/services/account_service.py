"""Canonical account resolution.

Every ledger, voucher and order row points at ``users.id``. Supabase sign-ins
carry a UUID instead, so they are mapped to a ``users`` row here: an already
linked row wins, otherwise a legacy row with the same e-mail is linked, and
only then is a new row created. Linking and creation need a token whose
signature was checked.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pizzeria.core import security
from pizzeria.core.config import get_settings
from pizzeria.core.identity import Identity
from pizzeria.models import (
    Order,
    PointsTransaction,
    PointsTransactionType,
    User,
    UserPoints,
    UserRole,
    UserVoucher,
)

from . import exceptions
from .points_service import LedgerDrift, PointsLedger

logger = logging.getLogger(__name__)


@dataclass
class MergeReport:
    source_id: int
    target_id: int
    transactions_moved: int
    duplicate_transactions_dropped: int
    orders_moved: int
    vouchers_moved: int
    supabase_user_id_moved: bool
    drift: LedgerDrift


class AccountService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise exceptions.NotFoundError("User not found")
        return user

    def role_for_supabase_user(self, supabase_user_id: str) -> Optional[str]:
        role = (
            self.db.query(User.role)
            .filter(User.supabase_user_id == supabase_user_id)
            .scalar()
        )
        return role.value if role is not None else None

    def resolve(self, identity: Identity) -> User | None:
        """Return the canonical account of an identity, linking Supabase users on first sight."""

        if not identity.is_authenticated:
            return None

        if identity.user_id is not None:
            user = self.db.query(User).filter(User.id == identity.user_id).first()
        else:
            user = self._resolve_supabase(identity)

        if user is None:
            raise exceptions.AuthenticationError("Account not found")
        if not user.is_active:
            raise exceptions.AuthenticationError("Account is disabled")
        return user

    def create_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        phone: str | None = None,
        marketing_opt_in: bool = True,
        supabase_user_id: str | None = None,
        role: UserRole = UserRole.CUSTOMER,
    ) -> User:
        user = User(
            username=username.strip(),
            email=email.strip().lower(),
            password_hash=security.create_password_hash(password),
            first_name=first_name or "",
            last_name=last_name or "",
            phone=phone,
            marketing_opt_in=marketing_opt_in,
            supabase_user_id=supabase_user_id,
            role=role,
        )
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise exceptions.ConflictError("An account with this username or email already exists") from exc

        self.db.add(UserPoints(user_id=user.id, points=0, total_earned=0, total_redeemed=0))
        self.db.flush()
        if self.settings.POINTS_SIGNUP_BONUS > 0:
            PointsLedger(self.db).award_bonus(
                user_id=user.id,
                points=self.settings.POINTS_SIGNUP_BONUS,
                description="Welcome bonus",
                kind=PointsTransactionType.SIGNUP,
                commit=False,
            )
        self.db.commit()
        self.db.refresh(user)
        logger.info("Created account %s (%s)", user.id, user.username)
        return user

    def list_users(self, *, page: int, size: int, search: Optional[str] = None) -> Tuple[int, list[User]]:
        query = self.db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(User.username.ilike(pattern), User.email.ilike(pattern), User.phone.ilike(pattern))
            )
        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return total, users

    def update_user(self, *, user_id: int, data: dict) -> User:
        user = self.get_user(user_id)
        for key, value in data.items():
            setattr(user, key, value)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def merge_accounts(self, *, source_id: int, target_id: int) -> MergeReport:
        """Fold a duplicate account into ``target_id`` and recompute its balance."""

        if source_id == target_id:
            raise exceptions.ValidationError("Cannot merge an account into itself")
        source = self.get_user(source_id)
        target = self.get_user(target_id)

        ledger = PointsLedger(self.db)
        for user_id in sorted((source_id, target_id)):
            ledger.lock_balance(user_id, create=user_id == target_id)

        target_keys = {
            (order_id, kind)
            for order_id, kind in self.db.query(PointsTransaction.order_id, PointsTransaction.type).filter(
                PointsTransaction.user_id == target.id
            )
            if order_id is not None or kind == PointsTransactionType.SIGNUP
        }

        moved = dropped = 0
        for transaction in (
            self.db.query(PointsTransaction).filter(PointsTransaction.user_id == source.id).all()
        ):
            if (transaction.order_id, transaction.type) in target_keys:
                self.db.delete(transaction)
                dropped += 1
                continue
            transaction.user_id = target.id
            moved += 1
        self.db.flush()

        orders_moved = (
            self.db.query(Order)
            .filter(Order.user_id == source.id)
            .update({Order.user_id: target.id}, synchronize_session=False)
        )
        vouchers_moved = (
            self.db.query(UserVoucher)
            .filter(UserVoucher.user_id == source.id)
            .update({UserVoucher.user_id: target.id}, synchronize_session=False)
        )
        self.db.query(UserPoints).filter(UserPoints.user_id == source.id).delete(synchronize_session=False)

        supabase_moved = False
        if target.supabase_user_id is None and source.supabase_user_id is not None:
            supabase_user_id = source.supabase_user_id
            source.supabase_user_id = None
            self.db.flush()
            target.supabase_user_id = supabase_user_id
            supabase_moved = True
        source.is_active = False
        self.db.flush()
        self.db.expire_all()

        drift = ledger.reconcile(target.id, apply=True, commit=False)
        self.db.commit()
        logger.warning(
            "Merged account %s into %s: moved %s transactions, dropped %s duplicates, %s orders, %s vouchers",
            source_id,
            target_id,
            moved,
            dropped,
            orders_moved,
            vouchers_moved,
        )
        return MergeReport(
            source_id=source_id,
            target_id=target_id,
            transactions_moved=moved,
            duplicate_transactions_dropped=dropped,
            orders_moved=orders_moved,
            vouchers_moved=vouchers_moved,
            supabase_user_id_moved=supabase_moved,
            drift=drift,
        )

    def _resolve_supabase(self, identity: Identity) -> User | None:
        user = (
            self.db.query(User)
            .filter(User.supabase_user_id == identity.supabase_user_id)
            .first()
        )
        if user is not None:
            return user

        if not identity.verified:
            logger.warning(
                "Refusing to link or create an account for unverified supabase user %s",
                identity.supabase_user_id,
            )
            return None

        email = (identity.email or "").strip().lower()
        if email:
            legacy = (
                self.db.query(User)
                .filter(func.lower(User.email) == email, User.supabase_user_id.is_(None))
                .first()
            )
            if legacy is not None:
                legacy.supabase_user_id = identity.supabase_user_id
                self.db.commit()
                logger.info(
                    "Linked supabase user %s to existing account %s", identity.supabase_user_id, legacy.id
                )
                return legacy

        if not email:
            return None
        return self.create_user(
            username=self._available_username(email.split("@", 1)[0]),
            email=email,
            password=secrets.token_urlsafe(32),
            first_name=identity.first_name or "",
            last_name=identity.last_name or "",
            marketing_opt_in=identity.marketing_opt_in,
            supabase_user_id=identity.supabase_user_id,
        )

    def _available_username(self, base: str) -> str:
        base = base or "user"
        candidate = base
        for _ in range(10):
            taken = self.db.query(func.count(User.id)).filter(User.username == candidate).scalar()
            if not taken:
                return candidate
            candidate = f"{base}{secrets.randbelow(10000)}"
        raise exceptions.ServiceError("Failed to allocate a username")
