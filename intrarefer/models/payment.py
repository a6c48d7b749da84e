"""
Payment model for subscription purchases
One row per gateway order
"""

from sqlalchemy import Column, String, Integer, ForeignKey, Index, Enum, Text, Boolean, JSON, Uuid
from sqlalchemy.orm import relationship
import math
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, UTCDateTime, enum_values
from intrarefer.utils.helpers import SECONDS_PER_DAY

class PaymentStatus(str, enum.Enum):
    """Payment status enumeration"""
    CREATED = "created"
    ATTEMPTED = "attempted"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

class SubscriptionType(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

class PaymentMethod(str, enum.Enum):
    CARD = "card"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    UPI = "upi"

class Payment(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Subscription payment transaction records"""

    __tablename__ = "payments"

    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # Gateway details
    gateway_order_id = Column(String(255), unique=True, nullable=False)
    gateway_payment_id = Column(String(255), nullable=True)
    gateway_signature = Column(String(500), nullable=True)

    # Amount in smallest currency unit (paise)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    status = Column(
        Enum(PaymentStatus, values_callable=enum_values, name="payment_status"),
        default=PaymentStatus.CREATED,
        nullable=False
    )

    # Subscription window granted by this payment
    subscription_type = Column(
        Enum(SubscriptionType, values_callable=enum_values, name="subscription_type"),
        default=SubscriptionType.MONTHLY,
        nullable=False
    )
    subscription_start = Column(UTCDateTime, nullable=True)
    subscription_end = Column(UTCDateTime, nullable=True)

    payment_method = Column(
        Enum(PaymentMethod, values_callable=enum_values, name="payment_method"),
        default=PaymentMethod.CARD,
        nullable=False
    )
    description = Column(String(255), default="IntraRefer Premium Subscription")

    failure_reason = Column(Text, nullable=True)

    # Refund
    refund_id = Column(String(255), nullable=True)
    refund_amount = Column(Integer, nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(UTCDateTime, nullable=True)

    # Request metadata
    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(64), nullable=True)

    # Webhook audit
    webhook_received = Column(Boolean, default=False, nullable=False)
    webhook_data = Column(JSON, nullable=True)

    user = relationship("User", foreign_keys=[user_id], lazy="raise")

    __table_args__ = (
        Index("idx_payments_user_status", "user_id", "status"),
        Index("idx_payments_gateway_payment", "gateway_payment_id"),
        Index("idx_payments_status_created", "status", "created_at"),
        Index("idx_payments_window", "subscription_start", "subscription_end"),
    )

    @property
    def subscription_duration_days(self) -> int:
        """Length of the granted window in days"""
        if not self.subscription_start or not self.subscription_end:
            return 0
        seconds = (self.subscription_end - self.subscription_start).total_seconds()
        return math.ceil(seconds / SECONDS_PER_DAY)

    def __str__(self):
        return f"Payment {self.id} - {self.amount} {self.currency} ({self.status})"
