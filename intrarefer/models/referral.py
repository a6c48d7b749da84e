"""
Referral model
A job opening posted by an employee who can refer candidates
"""

from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Index, Enum, Text, JSON, Uuid, event
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, UTCDateTime, enum_values
from intrarefer.utils.helpers import utc_now, days_until, ensure_aware

class ReferralStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    EXPIRED = "expired"

class JobType(str, enum.Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"

class ExperienceLevel(str, enum.Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    EXECUTIVE = "executive"

class WorkMode(str, enum.Enum):
    REMOTE = "remote"
    ONSITE = "onsite"
    HYBRID = "hybrid"

class Urgency(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class Referral(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Referral opportunity"""

    __tablename__ = "referrals"

    referrer_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # Job details
    title = Column(String(100), nullable=False)
    company = Column(String(100), nullable=False)
    department = Column(String(50))
    location = Column(String(200), nullable=False)
    job_type = Column(Enum(JobType, values_callable=enum_values, name="job_type"), nullable=False)
    experience_level = Column(
        Enum(ExperienceLevel, values_callable=enum_values, name="experience_level"),
        nullable=False
    )
    description = Column(Text, nullable=False)
    requirements = Column(JSON, default=list, nullable=False)
    skills = Column(JSON, default=list, nullable=False)
    benefits = Column(JSON, default=list, nullable=False)

    # Compensation
    salary_min = Column(Integer)
    salary_max = Column(Integer)
    salary_currency = Column(String(3), default="INR", nullable=False)

    application_deadline = Column(UTCDateTime, nullable=True)

    # Status and visibility
    status = Column(
        Enum(ReferralStatus, values_callable=enum_values, name="referral_status"),
        default=ReferralStatus.DRAFT,
        nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Analytics
    views = Column(Integer, default=0, nullable=False)
    application_count = Column(Integer, default=0, nullable=False)

    is_priority = Column(Boolean, default=False, nullable=False)
    work_mode = Column(
        Enum(WorkMode, values_callable=enum_values, name="work_mode"),
        default=WorkMode.ONSITE,
        nullable=False
    )
    urgency = Column(
        Enum(Urgency, values_callable=enum_values, name="referral_urgency"),
        default=Urgency.MEDIUM,
        nullable=False
    )

    referrer = relationship("User", foreign_keys=[referrer_id], lazy="raise")

    __table_args__ = (
        Index("idx_referrals_referrer", "referrer_id"),
        Index("idx_referrals_status", "status"),
        Index("idx_referrals_company", "company"),
        Index("idx_referrals_location", "location"),
        Index("idx_referrals_job_type", "job_type"),
        Index("idx_referrals_experience_level", "experience_level"),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Deadline set and already passed"""
        if self.application_deadline is None:
            return False
        return (now or utc_now()) > ensure_aware(self.application_deadline)

    def effective_status(self, now: Optional[datetime] = None) -> ReferralStatus:
        """
        Status as observed at `now`

        An active referral past its deadline reads as expired whether or
        not the row has been rewritten yet.
        """
        status = ReferralStatus(self.status)
        if status == ReferralStatus.ACTIVE and self.is_expired(now):
            return ReferralStatus.EXPIRED
        return status

    def days_until_deadline(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.application_deadline is None:
            return None
        return days_until(self.application_deadline, now or utc_now())

    def is_accepting_applications(self, now: Optional[datetime] = None) -> bool:
        return bool(self.is_active) and self.effective_status(now) == ReferralStatus.ACTIVE

    def __str__(self):
        return f"{self.title} at {self.company}"

@event.listens_for(Referral, "before_insert")
@event.listens_for(Referral, "before_update")
def expire_on_save(mapper, connection, target):
    """Persist the expired status whenever an overdue active referral is saved"""
    if target.status is not None and target.effective_status() == ReferralStatus.EXPIRED:
        target.status = ReferralStatus.EXPIRED
