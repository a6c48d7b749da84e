"""Application model: a job seeker's request to be referred"""

from sqlalchemy import Column, String, Integer, ForeignKey, Index, Enum, Text, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, UTCDateTime, enum_values

class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

class ApplicationSource(str, enum.Enum):
    DIRECT = "direct"
    SEARCH = "search"
    RECOMMENDATION = "recommendation"

class ApplicationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class MessageSender(str, enum.Enum):
    JOB_SEEKER = "jobSeeker"
    REFERRER = "referrer"

WITHDRAWABLE_STATUSES = {ApplicationStatus.PENDING, ApplicationStatus.REVIEWED}

class Application(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Application to a referral"""

    __tablename__ = "applications"

    referral_id = Column(Uuid, ForeignKey("referrals.id"), nullable=False)
    job_seeker_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    referrer_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # Content
    cover_letter = Column(Text, nullable=False)
    resume = Column(String(500), default="")

    status = Column(
        Enum(ApplicationStatus, values_callable=enum_values, name="application_status"),
        default=ApplicationStatus.PENDING,
        nullable=False
    )

    # Referrer feedback
    referrer_notes = Column(Text)
    reviewed_at = Column(UTCDateTime)

    # Additional information
    expected_salary = Column(Integer)
    available_from = Column(UTCDateTime)
    notice_period = Column(Integer)  # days
    source = Column(
        Enum(ApplicationSource, values_callable=enum_values, name="application_source"),
        default=ApplicationSource.DIRECT,
        nullable=False
    )
    priority = Column(
        Enum(ApplicationPriority, values_callable=enum_values, name="application_priority"),
        default=ApplicationPriority.MEDIUM,
        nullable=False
    )

    # Communication
    last_contacted_at = Column(UTCDateTime)
    communication_history = Column(JSON, default=list, nullable=False)

    referral = relationship("Referral", foreign_keys=[referral_id], lazy="raise")
    job_seeker = relationship("User", foreign_keys=[job_seeker_id], lazy="raise")
    referrer = relationship("User", foreign_keys=[referrer_id], lazy="raise")

    __table_args__ = (
        UniqueConstraint("referral_id", "job_seeker_id", name="uq_applications_referral_job_seeker"),
        Index("idx_applications_job_seeker_status", "job_seeker_id", "status"),
        Index("idx_applications_referrer_status", "referrer_id", "status"),
        Index("idx_applications_status_created", "status", "created_at"),
    )

    def can_be_withdrawn(self) -> bool:
        return ApplicationStatus(self.status) in WITHDRAWABLE_STATUSES

    def can_be_updated_by_job_seeker(self) -> bool:
        return ApplicationStatus(self.status) == ApplicationStatus.PENDING

    def __str__(self):
        return f"Application {self.id} ({self.status})"
