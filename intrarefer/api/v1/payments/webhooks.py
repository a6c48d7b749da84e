"""
Payment webhook handlers
"""

from datetime import datetime
from typing import Any, Dict, Optional
import logging

from sqlalchemy import select

from intrarefer.models import Payment
from intrarefer.services.subscription import SubscriptionService

logger = logging.getLogger(__name__)

class WebhookHandler:
    """Apply authenticated gateway events to payment records"""

    def __init__(self, subscriptions: SubscriptionService):
        self.subscriptions = subscriptions
        self.db = subscriptions.db

    @staticmethod
    def validate_webhook_data(data: Dict[str, Any]) -> bool:
        """
        Validate webhook data structure

        Args:
            data: Webhook payload

        Returns:
            True if valid
        """
        required_fields = ["event", "payload"]
        return isinstance(data, dict) and all(field in data for field in required_fields)

    def get_event_handler(self, event: str):
        """
        Get handler for specific event

        Args:
            event: Event name

        Returns:
            Handler coroutine, or None for events that are only logged
        """
        handlers = {
            "payment.captured": self.handle_payment_captured,
            "payment.failed": self.handle_payment_failed,
            "payment.authorized": self.handle_payment_authorized,
            "refund.processed": self.handle_refund_processed
        }
        return handlers.get(event)

    async def dispatch(self, data: Dict[str, Any], now: datetime) -> Optional[str]:
        if not self.validate_webhook_data(data):
            logger.warning("Webhook payload missing event or payload; ignored")
            return None

        event = data["event"]
        handler = self.get_event_handler(event)
        if handler is None:
            logger.info(f"Unhandled webhook event: {event}")
            return None

        await handler(data["payload"], now)
        return event

    async def _payment_for_order(self, order_id: Optional[str]) -> Optional[Payment]:
        if not order_id:
            return None
        payment = await self.subscriptions.get_payment_by_order_id(order_id)
        if payment is None:
            logger.warning(f"Webhook for unknown order {order_id}")
        return payment

    async def handle_payment_captured(self, payload: Dict[str, Any], now: datetime) -> None:
        """Activate the subscription unless the client callback already did"""
        entity = payload["payment"]["entity"]
        logger.info(f"Payment captured: {entity['id']} (order {entity.get('order_id')})")

        payment = await self._payment_for_order(entity.get("order_id"))
        if payment is None:
            return

        activated = await self.subscriptions.mark_paid(payment, entity["id"], None, now, webhook_data=entity)
        if not activated:
            await self.subscriptions.record_webhook(payment, entity)

    async def handle_payment_failed(self, payload: Dict[str, Any], now: datetime) -> None:
        entity = payload["payment"]["entity"]
        logger.info(f"Payment failed: {entity['id']} (order {entity.get('order_id')})")

        payment = await self._payment_for_order(entity.get("order_id"))
        if payment is None:
            return

        reason = entity.get("error_description") or "Payment failed"
        failed = await self.subscriptions.mark_failed(payment, reason, gateway_payment_id=entity["id"], webhook_data=entity)
        if not failed:
            await self.subscriptions.record_webhook(payment, entity)

    async def handle_payment_authorized(self, payload: Dict[str, Any], now: datetime) -> None:
        entity = payload["payment"]["entity"]
        logger.info(f"Payment authorized: {entity['id']}")

        payment = await self._payment_for_order(entity.get("order_id"))
        if payment is None:
            return

        attempted = await self.subscriptions.mark_attempted(payment, entity["id"], webhook_data=entity)
        if not attempted:
            await self.subscriptions.record_webhook(payment, entity)

    async def handle_refund_processed(self, payload: Dict[str, Any], now: datetime) -> None:
        """Apply a refund made on the gateway side"""
        entity = payload["refund"]["entity"]
        logger.info(f"Refund processed: {entity['id']} for payment {entity.get('payment_id')}")

        result = await self.db.execute(
            select(Payment).where(Payment.gateway_payment_id == entity.get("payment_id"))
        )
        payment = result.scalars().first()
        if payment is None:
            logger.warning(f"Refund for unknown payment {entity.get('payment_id')}")
            return

        notes = entity.get("notes") or {}
        reason = notes.get("reason") if isinstance(notes, dict) else None
        refunded = await self.subscriptions.process_refund(
            payment,
            now,
            refund_id=entity["id"],
            amount=entity.get("amount"),
            reason=reason or "Refund processed by gateway",
            webhook_data=entity
        )
        if not refunded:
            await self.subscriptions.record_webhook(payment, entity)
