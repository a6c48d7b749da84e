"""
Payment schemas for request/response validation
"""

from pydantic import AliasChoices, Field
from typing import List, Optional
from datetime import datetime
import uuid

from intrarefer.models.payment import PaymentMethod, PaymentStatus, SubscriptionType
from intrarefer.schemas.base import BaseSchema, UserResponse

class PlanResponse(BaseSchema):
    id: SubscriptionType
    name: str
    amount: int
    currency: str
    duration: int
    description: str
    features: List[str]

class PlansResponse(BaseSchema):
    success: bool = True
    plans: List[PlanResponse]

class CreateOrderRequest(BaseSchema):
    """Schema for starting a subscription purchase"""
    subscription_type: SubscriptionType

class OrderInfo(BaseSchema):
    id: str
    amount: int
    currency: str

class PlanInfo(BaseSchema):
    name: str
    duration: int
    features: List[str]

class CreateOrderResponse(BaseSchema):
    """
    Everything the checkout widget needs

    Example:
        {"order": {"id": "order_ABC123", "amount": 9900, "currency": "INR"},
         "plan": {"name": "Monthly Premium", "duration": 30, "features": [...]},
         "gatewayKeyId": "rzp_test_1234567890"}
    """
    success: bool = True
    order: OrderInfo
    plan: PlanInfo
    gateway_key_id: Optional[str] = None

class VerifyPaymentRequest(BaseSchema):
    """Checkout callback; accepts the field names the widget emits"""
    order_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("orderId", "order_id", "razorpay_order_id")
    )
    payment_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("paymentId", "payment_id", "razorpay_payment_id")
    )
    signature: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature")
    )

class SubscriptionInfo(BaseSchema):
    is_active: bool
    type: Optional[SubscriptionType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class VerifyPaymentResponse(BaseSchema):
    success: bool = True
    message: str
    subscription: SubscriptionInfo
    user: UserResponse

class SubscriptionStatusResponse(BaseSchema):
    is_subscribed: bool
    is_active: bool
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    subscription_type: Optional[SubscriptionType] = None
    days_remaining: int

class PaymentResponse(BaseSchema):
    """Payment as shown to its owner; signature and webhook payload omitted"""
    id: uuid.UUID
    gateway_order_id: str
    gateway_payment_id: Optional[str] = None
    amount: int
    currency: str
    status: PaymentStatus
    subscription_type: SubscriptionType
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    subscription_duration_days: int = 0
    payment_method: PaymentMethod
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    refund_amount: Optional[int] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime

class PaymentHistoryResponse(BaseSchema):
    success: bool = True
    payments: List[PaymentResponse]
    total: int
    page: int
    size: int
    pages: int

class WebhookAck(BaseSchema):
    status: str = "ok"
