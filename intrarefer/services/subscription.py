"""
Subscription activation and payment status reconciliation

Client verification and gateway webhooks both funnel into the same
guarded status updates, so whichever reaches the database first wins and
the other is a no-op.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
import hashlib
import hmac
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from intrarefer.core.config import settings
from intrarefer.core.exceptions import InvalidPaymentException
from intrarefer.models.payment import Payment, PaymentStatus, SubscriptionType
from intrarefer.models.user import User
from intrarefer.services.state_machine import payment_state_machine

logger = logging.getLogger(__name__)

PREMIUM_FEATURES = [
    "Unlimited job applications",
    "Verified badge on profile",
    "AI-based referral matching",
    "Resume analyzer",
    "Higher visibility to referrers",
    "Priority customer support"
]

PLANS: Dict[SubscriptionType, Dict[str, Any]] = {
    SubscriptionType.MONTHLY: {
        "name": "Monthly Premium",
        "duration_days": 30,
        "description": "Billed every month"
    },
    SubscriptionType.YEARLY: {
        "name": "Yearly Premium",
        "duration_days": 365,
        "description": "17% savings compared to monthly"
    }
}

def plan_amount(subscription_type: SubscriptionType) -> int:
    """Plan price in paise"""
    if SubscriptionType(subscription_type) == SubscriptionType.YEARLY:
        return settings.YEARLY_PLAN_AMOUNT
    return settings.MONTHLY_PLAN_AMOUNT

def get_plan(subscription_type: SubscriptionType) -> Dict[str, Any]:
    """Plan details including price and features"""
    try:
        subscription_type = SubscriptionType(subscription_type)
    except ValueError:
        raise InvalidPaymentException("Invalid subscription type")

    plan = PLANS[subscription_type]
    return {
        "id": subscription_type.value,
        "name": plan["name"],
        "amount": plan_amount(subscription_type),
        "currency": settings.SUBSCRIPTION_CURRENCY,
        "duration": plan["duration_days"],
        "description": plan["description"],
        "features": list(PREMIUM_FEATURES)
    }

def list_plans() -> list:
    return [get_plan(subscription_type) for subscription_type in SubscriptionType]

def compute_subscription_window(
    subscription_type: SubscriptionType,
    now: datetime
) -> Tuple[datetime, datetime]:
    """Window granted by a plan: fixed 24h days, not calendar months"""
    duration_days = PLANS[SubscriptionType(subscription_type)]["duration_days"]
    return now, now + timedelta(days=duration_days)

def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

def verify_payment_signature(
    order_id: str,
    payment_id: str,
    signature: Optional[str],
    secret: Optional[str] = None
) -> bool:
    """
    Verify the checkout signature

    The gateway signs "order_id|payment_id" with the API key secret.
    """
    secret = secret or settings.RAZORPAY_KEY_SECRET
    if not secret or not signature:
        return False
    expected = _hmac_sha256(secret, f"{order_id}|{payment_id}".encode("utf-8"))
    return hmac.compare_digest(expected, signature)

def verify_webhook_signature(
    body: bytes,
    signature: Optional[str],
    secret: Optional[str] = None
) -> bool:
    """Verify a webhook signature against the raw request body"""
    secret = secret or settings.webhook_secret
    if not secret or not signature:
        return False
    expected = _hmac_sha256(secret, body)
    return hmac.compare_digest(expected, signature)

class SubscriptionService:
    """Guarded payment status changes and the user fields they drive"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_payment_by_order_id(self, order_id: str) -> Optional[Payment]:
        result = await self.db.execute(
            select(Payment).where(Payment.gateway_order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def _guarded_update(self, payment: Payment, new_status: PaymentStatus, values: Dict[str, Any]) -> bool:
        """
        Move a payment to `new_status` only if its stored status allows it

        Returns False without writing when another path already moved it.
        """
        allowed_sources = payment_state_machine.sources_of(new_status)
        result = await self.db.execute(
            update(Payment)
            .where(
                Payment.gateway_order_id == payment.gateway_order_id,
                Payment.status.in_(allowed_sources)
            )
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        await self.db.refresh(payment)
        return True

    async def mark_paid(
        self,
        payment: Payment,
        gateway_payment_id: str,
        signature: Optional[str],
        now: datetime,
        webhook_data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Activate the subscription bought by `payment`

        Flips the payment to paid and writes the window onto the user in
        the caller's transaction. Returns False when the payment was
        already paid or can no longer become paid.
        """
        start, end = compute_subscription_window(payment.subscription_type, now)

        values: Dict[str, Any] = {
            "gateway_payment_id": gateway_payment_id,
            "subscription_start": start,
            "subscription_end": end,
            "failure_reason": None
        }
        if signature:
            values["gateway_signature"] = signature
        if webhook_data is not None:
            values["webhook_received"] = True
            values["webhook_data"] = webhook_data

        if not await self._guarded_update(payment, PaymentStatus.PAID, values):
            logger.info(f"Payment {payment.gateway_order_id} already settled; activation skipped")
            return False

        await self.db.execute(
            update(User)
            .where(User.id == payment.user_id)
            .values(
                is_subscribed=True,
                subscription_start=start,
                subscription_end=end,
                subscription_id=payment.id
            )
            .execution_options(synchronize_session=False)
        )

        logger.info(
            f"Subscription activated for user {payment.user_id} "
            f"({payment.subscription_type.value}, order {payment.gateway_order_id}, ends {end.isoformat()})"
        )
        return True

    async def mark_failed(
        self,
        payment: Payment,
        reason: str,
        gateway_payment_id: Optional[str] = None,
        webhook_data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Record a failed attempt; never downgrades a paid payment"""
        values: Dict[str, Any] = {"failure_reason": reason}
        if gateway_payment_id:
            values["gateway_payment_id"] = gateway_payment_id
        if webhook_data is not None:
            values["webhook_received"] = True
            values["webhook_data"] = webhook_data

        changed = await self._guarded_update(payment, PaymentStatus.FAILED, values)
        if changed:
            logger.warning(f"Payment {payment.gateway_order_id} failed: {reason}")
        return changed

    async def mark_attempted(
        self,
        payment: Payment,
        gateway_payment_id: str,
        webhook_data: Optional[Dict[str, Any]] = None
    ) -> bool:
        values: Dict[str, Any] = {"gateway_payment_id": gateway_payment_id}
        if webhook_data is not None:
            values["webhook_received"] = True
            values["webhook_data"] = webhook_data
        return await self._guarded_update(payment, PaymentStatus.ATTEMPTED, values)

    async def record_webhook(self, payment: Payment, webhook_data: Dict[str, Any]) -> None:
        """Keep the latest gateway payload for audit"""
        await self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id)
            .values(webhook_received=True, webhook_data=webhook_data)
            .execution_options(synchronize_session=False)
        )

    async def process_refund(
        self,
        payment: Payment,
        now: datetime,
        refund_id: Optional[str] = None,
        amount: Optional[int] = None,
        reason: Optional[str] = None,
        webhook_data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Mark a paid payment refunded

        A full refund also ends the user's subscription when it is still
        the one granted by this payment.
        """
        refund_amount = amount if amount is not None else payment.amount
        values: Dict[str, Any] = {
            "refund_id": refund_id,
            "refund_amount": refund_amount,
            "refund_reason": reason,
            "refunded_at": now
        }
        if webhook_data is not None:
            values["webhook_received"] = True
            values["webhook_data"] = webhook_data

        if not await self._guarded_update(payment, PaymentStatus.REFUNDED, values):
            logger.info(f"Payment {payment.gateway_order_id} not refundable from its current status")
            return False

        if refund_amount >= payment.amount:
            await self.db.execute(
                update(User)
                .where(User.id == payment.user_id, User.subscription_id == payment.id)
                .values(
                    is_subscribed=False,
                    subscription_start=None,
                    subscription_end=None,
                    subscription_id=None
                )
                .execution_options(synchronize_session=False)
            )

        logger.info(f"Refund recorded for payment {payment.gateway_order_id}: {refund_amount}")
        return True
