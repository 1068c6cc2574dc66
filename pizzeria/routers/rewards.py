from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_current_account, get_db
from pizzeria.models import User
from pizzeria.schemas import RedeemResponse, RewardRead, VoucherRead
from pizzeria.services import PointsLedger, RewardService, VoucherService

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("", response_model=list[RewardRead])
def list_rewards(db: Session = Depends(get_db)):
    return [RewardRead.model_validate(reward) for reward in RewardService(db).list_rewards()]


@router.post("/{reward_id}/redeem", response_model=RedeemResponse, status_code=status.HTTP_201_CREATED)
def redeem_reward(
    reward_id: int,
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    voucher = VoucherService(db).issue(user_id=account.id, reward_id=reward_id)
    balance = PointsLedger(db).get_balance(account.id)
    return RedeemResponse(voucher=VoucherRead.model_validate(voucher), points_remaining=balance.points)
