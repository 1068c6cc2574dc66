from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class PaymentIntentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    order_id: Optional[int] = None
    order_data: Optional[dict[str, Any]] = None


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str


class WebhookResponse(BaseModel):
    received: bool
