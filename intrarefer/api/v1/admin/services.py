"""
Admin service layer
Payment reporting, refunds and subscription repair
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, extract
from sqlalchemy.orm import selectinload
import uuid
import logging

from intrarefer.models import Payment, PaymentStatus
from intrarefer.schemas.base import UserSummary
from intrarefer.core.exceptions import BadRequestException, NotFoundException
from intrarefer.services.reconciliation import find_subscription_anomalies, reconcile_subscriptions
from intrarefer.services.state_machine import payment_state_machine
from intrarefer.services.subscription import SubscriptionService
from intrarefer.api.v1.payments.razorpay_client import RazorpayClient
from .schemas import RefundRequest

logger = logging.getLogger(__name__)

class AdminService:
    """Admin-only reporting and repair operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def payment_statistics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """Count and amount per payment status, optionally within a creation window"""
        query = select(
            Payment.status,
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0)
        ).group_by(Payment.status)

        if start_date and end_date:
            query = query.where(Payment.created_at >= start_date, Payment.created_at <= end_date)

        result = await self.db.execute(query)
        return [
            {"status": status, "count": count, "total_amount": int(total)}
            for status, count, total in result.all()
        ]

    async def revenue_by_month(self) -> List[Dict[str, Any]]:
        """Paid revenue per calendar month, newest first"""
        year = extract("year", Payment.created_at)
        month = extract("month", Payment.created_at)

        result = await self.db.execute(
            select(year, month, func.sum(Payment.amount), func.count(Payment.id))
            .where(Payment.status == PaymentStatus.PAID)
            .group_by(year, month)
            .order_by(year.desc(), month.desc())
        )
        return [
            {
                "year": int(row_year),
                "month": int(row_month),
                "total_revenue": int(total),
                "total_payments": count
            }
            for row_year, row_month, total, count in result.all()
        ]

    async def active_subscriptions(self, now: datetime) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Payment)
            .options(selectinload(Payment.user))
            .where(Payment.status == PaymentStatus.PAID, Payment.subscription_end > now)
            .order_by(Payment.subscription_end.asc())
        )
        return [
            {
                "payment_id": payment.id,
                "gateway_order_id": payment.gateway_order_id,
                "subscription_type": payment.subscription_type,
                "subscription_start": payment.subscription_start,
                "subscription_end": payment.subscription_end,
                "amount": payment.amount,
                "user": UserSummary.model_validate(payment.user)
            }
            for payment in result.scalars().all()
        ]

    async def refund_payment(
        self,
        payment_id: uuid.UUID,
        data: RefundRequest,
        gateway: RazorpayClient,
        now: datetime
    ) -> Payment:
        """
        Refund through the gateway, then record it

        A gateway timeout leaves the payment paid; its outcome is unknown
        and a later refund.processed webhook settles it.

        Raises:
            NotFoundException: Unknown payment
            InvalidStatusTransitionException: Payment is not paid
            BadRequestException: Amount exceeds the payment
        """
        payment = await self.db.get(Payment, payment_id)
        if not payment:
            raise NotFoundException("Payment not found", error_code="PAYMENT_NOT_FOUND")

        payment_state_machine.transition(payment.status, PaymentStatus.REFUNDED)

        if not payment.gateway_payment_id:
            raise BadRequestException("Payment has no captured gateway payment", error_code="INVALID_PAYMENT")

        amount = data.amount or payment.amount
        if amount > payment.amount:
            raise BadRequestException("Refund amount exceeds payment amount", error_code="INVALID_REFUND_AMOUNT")

        refund = await gateway.create_refund(
            payment.gateway_payment_id,
            amount=amount,
            notes={"reason": data.reason, "payment_id": str(payment.id)}
        )

        subscriptions = SubscriptionService(self.db)
        await subscriptions.process_refund(
            payment,
            now,
            refund_id=refund.get("id"),
            amount=amount,
            reason=data.reason
        )
        await self.db.refresh(payment)
        logger.info(f"Admin refund {refund.get('id')} for payment {payment.id}: {amount}")
        return payment

    async def subscription_anomalies(self, now: datetime) -> List[Dict[str, Any]]:
        anomalies = await find_subscription_anomalies(self.db, now)
        return [
            {
                "payment_id": payment.id,
                "gateway_order_id": payment.gateway_order_id,
                "user_id": user.id,
                "payment_subscription_end": payment.subscription_end,
                "user_subscription_id": user.subscription_id,
                "user_subscription_end": user.subscription_end
            }
            for payment, user in anomalies
        ]

    async def reconcile(self, now: datetime) -> List[Dict[str, Any]]:
        return await reconcile_subscriptions(self.db, now)
