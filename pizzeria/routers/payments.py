from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_db
from pizzeria.schemas import PaymentIntentRequest, PaymentIntentResponse, WebhookResponse
from pizzeria.services import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/intent", response_model=PaymentIntentResponse)
def create_payment_intent(payload: PaymentIntentRequest, db: Session = Depends(get_db)):
    service = PaymentService(db)
    return service.create_payment_intent(
        amount=payload.amount,
        order_id=payload.order_id,
        order_data=payload.order_data,
    )


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    service = PaymentService(db)
    return service.handle_webhook(payload=payload, signature=request.headers.get("stripe-signature"))
