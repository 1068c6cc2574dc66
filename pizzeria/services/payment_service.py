import json
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import stripe
from sqlalchemy.orm import Session

from pizzeria.core.config import get_settings
from pizzeria.models import Order, PaymentStatus

from . import exceptions

logger = logging.getLogger(__name__)

METADATA_LIMITS = {
    "userId": 50,
    "orderType": 20,
    "total": 10,
    "phone": 20,
}


def to_cents(amount: Decimal) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        order_id: int | None = None,
        order_data: dict[str, Any] | None = None,
    ) -> dict[str, str]:
        if amount is None or Decimal(str(amount)) <= 0:
            raise exceptions.ValidationError("Amount must be positive")
        if not self.settings.STRIPE_SECRET_KEY:
            raise exceptions.ExternalServiceError("Payments are not configured")

        order = None
        cents = to_cents(amount)
        if order_id is not None:
            order = self.db.query(Order).filter(Order.id == order_id).first()
            if order is None:
                raise exceptions.NotFoundError("Order not found")
            if cents != to_cents(order.total):
                logger.warning(
                    "Intent amount %s for order %s replaced by the order total %s", amount, order.id, order.total
                )
            cents = to_cents(order.total)

        try:
            intent = stripe.PaymentIntent.create(
                amount=cents,
                currency=self.settings.STRIPE_CURRENCY,
                metadata=self._metadata(order_id, order_data),
                api_key=self.settings.STRIPE_SECRET_KEY,
            )
        except stripe.CardError as exc:
            raise exceptions.ValidationError(exc.user_message or str(exc)) from exc
        except stripe.StripeError as exc:
            logger.error("Stripe PaymentIntent creation failed: %s", exc)
            raise exceptions.ExternalServiceError(
                "Payment provider error",
                details={"message": exc.user_message or str(exc), "http_status": exc.http_status},
            ) from exc

        if order is not None:
            order.payment_intent_id = intent["id"]
            self.db.commit()
        logger.info("Created payment intent %s for order %s", intent["id"], order_id)
        return {"client_secret": intent["client_secret"], "payment_intent_id": intent["id"]}

    def handle_webhook(self, *, payload: bytes, signature: str | None) -> dict[str, Any]:
        secret = self.settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            raise exceptions.ExternalServiceError("Webhook secret not configured")
        if not signature:
            raise exceptions.ValidationError("Missing Stripe-Signature header")
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
            event = json.loads(payload)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("Rejected stripe webhook: %s", exc)
            raise exceptions.ValidationError("Webhook signature verification failed") from exc

        event_type = event["type"]
        if event_type == "payment_intent.succeeded":
            self._mark_order(event["data"]["object"], PaymentStatus.PAID)
        elif event_type == "payment_intent.payment_failed":
            self._mark_order(event["data"]["object"], PaymentStatus.FAILED)
        else:
            logger.debug("Ignoring stripe event %s", event_type)
        return {"received": True}

    def _mark_order(self, intent: Any, status: PaymentStatus) -> None:
        intent_id = intent["id"]
        metadata = intent.get("metadata") or {}
        order = None
        raw_order_id = metadata.get("orderId")
        if raw_order_id and str(raw_order_id).isdigit():
            order = self.db.query(Order).filter(Order.id == int(raw_order_id)).first()
        if order is None:
            order = self.db.query(Order).filter(Order.payment_intent_id == intent_id).first()
        if order is None:
            logger.warning("No order found for payment intent %s", intent_id)
            return

        if status == PaymentStatus.PAID:
            received = intent.get("amount_received") or intent.get("amount") or 0
            if received < to_cents(order.total):
                logger.error(
                    "Payment intent %s covers %s cents but order %s totals %s; not marking it paid",
                    intent_id,
                    received,
                    order.id,
                    order.total,
                )
                return

        order.payment_status = status
        order.payment_intent_id = intent_id
        self.db.commit()
        logger.info("Order %s payment marked %s", order.id, status.value)

    @staticmethod
    def _metadata(order_id: int | None, order_data: dict[str, Any] | None) -> dict[str, str]:
        metadata: dict[str, str] = {}
        if order_id is not None:
            metadata["orderId"] = str(order_id)
        if order_data:
            values = {
                "userId": order_data.get("userId") or "guest",
                "orderType": order_data.get("orderType") or "pickup",
                "total": order_data.get("total") or "0",
                "phone": order_data.get("phone") or "",
            }
            for key, value in values.items():
                metadata[key] = str(value)[: METADATA_LIMITS[key]]
            metadata["itemCount"] = str(len(order_data.get("items") or []))
        return metadata
