"""
Repair job for paid payments whose subscription never reached the user

Activation writes the payment and the user in one transaction, so these
anomalies only come from data written outside that path (manual edits,
partial restores, older deployments). The job is safe to run repeatedly.
"""

from datetime import datetime
from typing import Any, Dict, List, Tuple
import logging

from sqlalchemy import select, update, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from intrarefer.models.payment import Payment, PaymentStatus
from intrarefer.models.user import User

logger = logging.getLogger(__name__)

async def find_subscription_anomalies(db: AsyncSession, now: datetime) -> List[Tuple[Payment, User]]:
    """
    Paid, unexpired payments not reflected on their user

    Returns (payment, user) pairs, latest window first.
    """
    not_referenced = or_(
        User.subscription_id.is_(None),
        User.subscription_id != Payment.id
    )
    window_behind = or_(
        User.subscription_end.is_(None),
        User.subscription_end < Payment.subscription_end
    )
    referenced_but_inactive = and_(
        User.subscription_id == Payment.id,
        User.is_subscribed.is_(False)
    )

    result = await db.execute(
        select(Payment, User)
        .join(User, User.id == Payment.user_id)
        .where(
            Payment.status == PaymentStatus.PAID,
            Payment.subscription_end > now,
            or_(and_(not_referenced, window_behind), referenced_but_inactive)
        )
        .order_by(Payment.subscription_end.desc())
    )
    return [(payment, user) for payment, user in result.all()]

async def reconcile_subscriptions(db: AsyncSession, now: datetime) -> List[Dict[str, Any]]:
    """
    Apply each anomalous payment's window to its user

    Only the subscription fields are written. When a user has several
    anomalous payments the one with the latest end wins.
    """
    anomalies = await find_subscription_anomalies(db, now)
    repaired = []
    seen_users = set()

    for payment, user in anomalies:
        if user.id in seen_users:
            continue
        seen_users.add(user.id)

        await db.execute(
            update(User)
            .where(User.id == user.id)
            .values(
                is_subscribed=True,
                subscription_start=payment.subscription_start,
                subscription_end=payment.subscription_end,
                subscription_id=payment.id
            )
            .execution_options(synchronize_session=False)
        )
        logger.warning(
            f"Repaired subscription for user {user.id} from payment {payment.gateway_order_id}"
        )
        repaired.append({
            "payment_id": payment.id,
            "user_id": user.id,
            "subscription_end": payment.subscription_end
        })

    if repaired:
        logger.info(f"Subscription reconciliation repaired {len(repaired)} user(s)")
    return repaired
