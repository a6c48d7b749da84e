"""
Payment service layer
Subscription checkout, verification and gateway webhooks
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import json
import logging

from intrarefer.models import Payment, PaymentStatus, SubscriptionType, User
from intrarefer.core.config import settings
from intrarefer.core.exceptions import (
    BadRequestException,
    GatewayNotConfiguredException,
    InvalidPaymentException,
    InvalidWebhookSignatureException,
    NotFoundException,
    PaymentAlreadyVerifiedException,
    PaymentVerificationException,
)
from intrarefer.services.subscription import (
    SubscriptionService,
    get_plan,
    verify_payment_signature,
    verify_webhook_signature,
)
from intrarefer.utils.helpers import days_until
from intrarefer.utils.pagination import paginate
from .razorpay_client import RazorpayClient
from .schemas import VerifyPaymentRequest
from .webhooks import WebhookHandler

logger = logging.getLogger(__name__)

class PaymentService:
    """Payment service for subscription purchases"""

    def __init__(self, db: AsyncSession, gateway: Optional[RazorpayClient] = None):
        self.db = db
        self.gateway = gateway
        self.subscriptions = SubscriptionService(db)

    async def create_order(
        self,
        user: User,
        subscription_type: SubscriptionType,
        now: datetime,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a gateway order and its payment record

        Nothing is written when the gateway call fails or times out.

        Raises:
            BadRequestException: If the user already has an active subscription
            PaymentGatewayException: Gateway rejected the order
            PaymentGatewayTimeoutException: Gateway did not answer in time
        """
        if user.is_subscription_active(now):
            raise BadRequestException(
                "You already have an active subscription",
                error_code="SUBSCRIPTION_ACTIVE"
            )

        plan = get_plan(subscription_type)
        receipt = f"sub_{user.id.hex[:12]}_{int(now.timestamp())}"

        order = await self.gateway.create_order(
            amount=plan["amount"],
            currency=plan["currency"],
            receipt=receipt,
            notes={
                "user_id": str(user.id),
                "subscription_type": plan["id"],
                "user_email": user.email
            }
        )

        payment = Payment(
            user_id=user.id,
            gateway_order_id=order["id"],
            amount=plan["amount"],
            currency=plan["currency"],
            status=PaymentStatus.CREATED,
            subscription_type=SubscriptionType(subscription_type),
            description=f"IntraRefer {plan['name']}",
            user_agent=(user_agent or "")[:500] or None,
            ip_address=ip_address
        )
        self.db.add(payment)
        await self.db.flush()

        logger.info(f"Order {order['id']} created for user {user.id} ({plan['id']})")

        return {
            "order": {
                "id": order["id"],
                "amount": order.get("amount", plan["amount"]),
                "currency": order.get("currency", plan["currency"])
            },
            "plan": {
                "name": plan["name"],
                "duration": plan["duration"],
                "features": plan["features"]
            },
            "gateway_key_id": settings.RAZORPAY_KEY_ID
        }

    async def verify_payment(self, user: User, data: VerifyPaymentRequest, now: datetime) -> Payment:
        """
        Verify the checkout callback and activate the subscription

        A bad signature fails the payment and that failure is committed
        before the error is raised, so it survives the request rollback.

        Raises:
            NotFoundException: No such order for this user
            PaymentAlreadyVerifiedException: Payment already paid
            PaymentVerificationException: Signature mismatch
        """
        if not settings.RAZORPAY_KEY_SECRET:
            raise GatewayNotConfiguredException()

        result = await self.db.execute(
            select(Payment).where(
                Payment.gateway_order_id == data.order_id,
                Payment.user_id == user.id
            )
        )
        payment = result.scalar_one_or_none()

        if not payment:
            raise NotFoundException("Payment not found", error_code="PAYMENT_NOT_FOUND")

        if payment.status == PaymentStatus.PAID:
            raise PaymentAlreadyVerifiedException()

        if not verify_payment_signature(data.order_id, data.payment_id, data.signature):
            logger.warning(f"Signature mismatch for order {data.order_id} (user {user.id})")
            await self.subscriptions.mark_failed(payment, "Invalid signature", gateway_payment_id=data.payment_id)
            await self.db.commit()
            raise PaymentVerificationException()

        activated = await self.subscriptions.mark_paid(payment, data.payment_id, data.signature, now)
        if not activated:
            await self.db.refresh(payment)
            if payment.status == PaymentStatus.PAID:
                raise PaymentAlreadyVerifiedException()
            raise InvalidPaymentException(f"Payment cannot be verified in status {payment.status.value}")

        return payment

    async def handle_webhook(self, body: bytes, signature: Optional[str], now: datetime) -> Optional[str]:
        """
        Authenticate and apply a gateway webhook

        Returns the event name that was handled, None for ignored events.

        Raises:
            InvalidWebhookSignatureException: Signature header missing or wrong
        """
        if not verify_webhook_signature(body, signature):
            logger.warning("Webhook rejected: invalid signature")
            raise InvalidWebhookSignatureException()

        try:
            event = json.loads(body)
        except ValueError:
            raise BadRequestException("Malformed webhook payload", error_code="INVALID_WEBHOOK_PAYLOAD")

        handler = WebhookHandler(self.subscriptions)
        return await handler.dispatch(event, now)

    async def get_subscription_status(self, user: User, now: datetime) -> Dict[str, Any]:
        subscription_type = None
        if user.subscription_id:
            payment = await self.db.get(Payment, user.subscription_id)
            if payment:
                subscription_type = payment.subscription_type

        is_active = user.is_subscription_active(now)
        return {
            "is_subscribed": bool(user.is_subscribed),
            "is_active": is_active,
            "subscription_start": user.subscription_start,
            "subscription_end": user.subscription_end,
            "subscription_type": subscription_type,
            "days_remaining": days_until(user.subscription_end, now) if is_active else 0
        }

    async def get_history(self, user: User, page: int = 1, size: int = 10) -> Dict[str, Any]:
        query = (
            select(Payment)
            .where(Payment.user_id == user.id)
            .order_by(Payment.created_at.desc(), Payment.id)
        )
        return await paginate(self.db, query, page, min(size, settings.MAX_PAGE_SIZE))
