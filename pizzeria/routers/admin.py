import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_db, require_admin
from pizzeria.models import ADMIN_ROLES, User, UserRole
from pizzeria.schemas import (
    LedgerAuditResponse,
    LedgerDriftRead,
    Pagination,
    PointsAdjustRequest,
    PointsHistoryResponse,
    PointsBalanceRead,
    PointsTransactionRead,
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeUpdate,
    RewardCreate,
    RewardRead,
    RewardUpdate,
    UserAdminUpdate,
    UserListResponse,
    UserRead,
)
from pizzeria.services import AccountService, PointsLedger, PromoCodeService, RewardService

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/users", response_model=UserListResponse)
def list_users(
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
    search: Optional[str] = Query(default=None, max_length=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    total, users = AccountService(db).list_users(page=page, size=size, search=search)
    return UserListResponse(
        pagination=Pagination(page=page, size=size, total=total),
        items=[UserRead.model_validate(user) for user in users],
    )


@router.patch("/users/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserAdminUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_none=True)
    if user_id == admin.id and updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change your own role or status")
    service = AccountService(db)
    target = service.get_user(user_id)
    if admin.role != UserRole.SUPER_ADMIN:
        if updates.get("role") in ADMIN_ROLES:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only super admins can grant admin roles")
        if target.role in ADMIN_ROLES and updates:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only super admins can change admin accounts")
    user = service.update_user(user_id=user_id, data=updates)
    logger.info("Admin %s updated user %s: %s", admin.id, user_id, updates)
    return UserRead.model_validate(user)


@router.get("/points/audit", response_model=LedgerAuditResponse)
def audit_points(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    drifts = PointsLedger(db).audit()
    return LedgerAuditResponse(
        accounts_with_drift=len(drifts),
        items=[LedgerDriftRead.model_validate(drift) for drift in drifts],
    )


@router.get("/points/{user_id}", response_model=PointsHistoryResponse)
def get_user_points(
    user_id: int,
    limit: int = Query(default=100, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    AccountService(db).get_user(user_id)
    ledger = PointsLedger(db)
    return PointsHistoryResponse(
        balance=PointsBalanceRead.model_validate(ledger.get_balance(user_id)),
        transactions=[PointsTransactionRead.model_validate(entry) for entry in ledger.history(user_id, limit=limit)],
    )


@router.post("/points/adjust", response_model=PointsTransactionRead, status_code=status.HTTP_201_CREATED)
def adjust_points(
    payload: PointsAdjustRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    AccountService(db).get_user(payload.user_id)
    transaction = PointsLedger(db).adjust(
        user_id=payload.user_id,
        delta=payload.points,
        description=f"{payload.reason} (by {admin.username})",
    )
    return PointsTransactionRead.model_validate(transaction)


@router.get("/rewards", response_model=list[RewardRead])
def list_rewards(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rewards = RewardService(db).list_rewards(include_inactive=True)
    return [RewardRead.model_validate(reward) for reward in rewards]


@router.post("/rewards", response_model=RewardRead, status_code=status.HTTP_201_CREATED)
def create_reward(
    payload: RewardCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return RewardRead.model_validate(RewardService(db).create_reward(data=payload.model_dump()))


@router.put("/rewards/{reward_id}", response_model=RewardRead)
def update_reward(
    reward_id: int,
    payload: RewardUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_none=True)
    return RewardRead.model_validate(RewardService(db).update_reward(reward_id=reward_id, data=updates))


@router.delete("/rewards/{reward_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reward(
    reward_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    RewardService(db).delete_reward(reward_id=reward_id)


@router.get("/promo-codes", response_model=list[PromoCodeRead])
def list_promo_codes(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [PromoCodeRead.model_validate(promo) for promo in PromoCodeService(db).list_codes()]


@router.post("/promo-codes", response_model=PromoCodeRead, status_code=status.HTTP_201_CREATED)
def create_promo_code(
    payload: PromoCodeCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    promo = PromoCodeService(db).create_code(data=payload.model_dump())
    logger.info("Admin %s created promo code %s", admin.id, promo.code)
    return PromoCodeRead.model_validate(promo)


@router.put("/promo-codes/{promo_id}", response_model=PromoCodeRead)
def update_promo_code(
    promo_id: int,
    payload: PromoCodeUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_none=True)
    return PromoCodeRead.model_validate(PromoCodeService(db).update_code(promo_id=promo_id, data=updates))


@router.delete("/promo-codes/{promo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_promo_code(
    promo_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    PromoCodeService(db).delete_code(promo_id=promo_id)
