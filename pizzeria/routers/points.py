from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_current_account, get_db
from pizzeria.models import User
from pizzeria.schemas import PointsBalanceRead, PointsHistoryResponse, PointsTransactionRead
from pizzeria.services import PointsLedger

router = APIRouter(prefix="/points", tags=["points"])


@router.get("", response_model=PointsBalanceRead)
def get_points(
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return PointsBalanceRead.model_validate(PointsLedger(db).get_balance(account.id))


@router.get("/history", response_model=PointsHistoryResponse)
def get_points_history(
    limit: int = Query(50, ge=1, le=500),
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    ledger = PointsLedger(db)
    return PointsHistoryResponse(
        balance=PointsBalanceRead.model_validate(ledger.get_balance(account.id)),
        transactions=[PointsTransactionRead.model_validate(entry) for entry in ledger.history(account.id, limit=limit)],
    )
