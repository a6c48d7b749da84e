"""Models package initialization"""

from .base import Base
from .user import User, UserRole
from .payment import Payment, PaymentStatus, SubscriptionType, PaymentMethod
from .referral import Referral, ReferralStatus, JobType, ExperienceLevel, WorkMode, Urgency
from .application import (
    Application,
    ApplicationStatus,
    ApplicationSource,
    ApplicationPriority,
    MessageSender,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Payment",
    "PaymentStatus",
    "SubscriptionType",
    "PaymentMethod",
    "Referral",
    "ReferralStatus",
    "JobType",
    "ExperienceLevel",
    "WorkMode",
    "Urgency",
    "Application",
    "ApplicationStatus",
    "ApplicationSource",
    "ApplicationPriority",
    "MessageSender",
]
