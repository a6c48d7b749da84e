"""
User model
Identity, role-specific profile, subscription window and weekly quota counters
"""

from sqlalchemy import Column, String, Boolean, Integer, Index, Enum, JSON, Uuid
from datetime import datetime
from typing import Optional
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, UTCDateTime, enum_values
from intrarefer.utils.helpers import utc_now

class UserRole(str, enum.Enum):
    JOB_SEEKER = "jobSeeker"
    REFERRER = "referrer"
    ADMIN = "admin"

class User(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Marketplace user; job seekers, referrers and admins share one table"""

    __tablename__ = "users"

    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=enum_values, name="user_role"),
        default=UserRole.JOB_SEEKER,
        nullable=False
    )

    # Profile
    phone = Column(String(10))
    location = Column(String(100))
    bio = Column(String(500))
    avatar = Column(String(500), default="")

    # Job seeker fields
    skills = Column(JSON, default=list, nullable=False)
    experience = Column(Integer)
    resume = Column(String(500))
    desired_roles = Column(JSON, default=list, nullable=False)

    # Referrer fields
    company = Column(String(100))
    position = Column(String(100))
    department = Column(String(100))
    years_at_company = Column(Integer)

    # Social links
    linkedin = Column(String(255))
    github = Column(String(255))
    portfolio = Column(String(255))

    # Subscription; written only by payment activation and refunds
    is_subscribed = Column(Boolean, default=False, nullable=False)
    subscription_start = Column(UTCDateTime, nullable=True)
    subscription_end = Column(UTCDateTime, nullable=True)
    subscription_id = Column(Uuid, nullable=True)

    # Free-tier weekly application counter
    weekly_application_count = Column(Integer, default=0, nullable=False)
    weekly_application_week_start = Column(UTCDateTime, default=utc_now, nullable=False)

    # Status
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_is_subscribed", "is_subscribed"),
    )

    def is_subscription_active(self, now: Optional[datetime] = None) -> bool:
        """True while the subscription window is open"""
        if not self.is_subscribed or not self.subscription_end:
            return False
        return (now or utc_now()) < self.subscription_end

    @property
    def has_active_subscription(self) -> bool:
        return self.is_subscription_active()

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
