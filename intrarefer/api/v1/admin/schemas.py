"""Admin schemas"""

from pydantic import Field
from typing import List, Optional
from datetime import datetime
import uuid

from intrarefer.models.payment import PaymentStatus, SubscriptionType
from intrarefer.schemas.base import BaseSchema, UserSummary

class StatusTotals(BaseSchema):
    status: PaymentStatus
    count: int
    total_amount: int

class PaymentStatsResponse(BaseSchema):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    stats: List[StatusTotals]

class MonthlyRevenue(BaseSchema):
    year: int
    month: int
    total_revenue: int
    total_payments: int

class RevenueResponse(BaseSchema):
    revenue: List[MonthlyRevenue]

class ActiveSubscription(BaseSchema):
    payment_id: uuid.UUID
    gateway_order_id: str
    subscription_type: SubscriptionType
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    amount: int
    user: UserSummary

class ActiveSubscriptionsResponse(BaseSchema):
    count: int
    subscriptions: List[ActiveSubscription]

class RefundRequest(BaseSchema):
    """Request for payment refund"""
    reason: str = Field(..., min_length=3, max_length=500)
    amount: Optional[int] = Field(None, gt=0, description="Partial refund amount in paise")

class RefundResponse(BaseSchema):
    success: bool = True
    payment_id: uuid.UUID
    refund_id: Optional[str] = None
    refund_amount: int
    status: PaymentStatus

class SubscriptionAnomaly(BaseSchema):
    payment_id: uuid.UUID
    gateway_order_id: str
    user_id: uuid.UUID
    payment_subscription_end: datetime
    user_subscription_id: Optional[uuid.UUID] = None
    user_subscription_end: Optional[datetime] = None

class AnomaliesResponse(BaseSchema):
    count: int
    anomalies: List[SubscriptionAnomaly]

class RepairedSubscription(BaseSchema):
    payment_id: uuid.UUID
    user_id: uuid.UUID
    subscription_end: datetime

class ReconcileResponse(BaseSchema):
    repaired: int
    subscriptions: List[RepairedSubscription]
