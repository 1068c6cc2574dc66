from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pizzeria.models.enums import PointsTransactionType


class PointsBalanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    points: int
    total_earned: int
    total_redeemed: int
    last_earned_at: Optional[datetime] = None


class PointsTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    order_id: Optional[int] = None
    type: PointsTransactionType
    points: int
    description: str
    order_amount: Optional[Decimal] = None
    created_at: datetime


class PointsHistoryResponse(BaseModel):
    balance: PointsBalanceRead
    transactions: list[PointsTransactionRead]


class PointsAdjustRequest(BaseModel):
    user_id: int
    points: int = Field(..., description="Signed number of points to add or remove")
    reason: str = Field(..., min_length=3, max_length=255)


class LedgerDriftRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    recorded_points: int
    expected_points: int
    recorded_total_earned: int
    expected_total_earned: int
    recorded_total_redeemed: int
    expected_total_redeemed: int
    difference: int


class LedgerAuditResponse(BaseModel):
    accounts_with_drift: int
    items: list[LedgerDriftRead]
