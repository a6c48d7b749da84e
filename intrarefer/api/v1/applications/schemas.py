"""
Application schemas for request/response validation
"""

from pydantic import Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime
import uuid

from intrarefer.models.application import ApplicationPriority, ApplicationSource, ApplicationStatus, MessageSender
from intrarefer.models.referral import JobType
from intrarefer.schemas.base import BaseSchema, UserSummary
from intrarefer.utils.validators import URL_PATTERN, sanitize_text, validate_pattern

class ApplicationCreate(BaseSchema):
    """Schema for applying to a referral"""
    referral_id: uuid.UUID
    cover_letter: str = Field(..., min_length=1, max_length=2000)
    resume: Optional[str] = None
    expected_salary: Optional[int] = Field(None, ge=0)
    available_from: Optional[datetime] = None
    notice_period: Optional[int] = Field(None, ge=0, le=365)
    source: ApplicationSource = ApplicationSource.DIRECT

    @field_validator("cover_letter")
    @classmethod
    def sanitize_cover_letter(cls, v):
        v = sanitize_text(v)
        if not v:
            raise ValueError("Cover letter is required")
        return v

    @field_validator("resume")
    @classmethod
    def validate_resume(cls, v):
        return validate_pattern(v, URL_PATTERN, "Resume must be a valid URL")

class ApplicationUpdate(BaseSchema):
    """Edits a job seeker may make while the application is pending"""
    cover_letter: Optional[str] = Field(None, min_length=1, max_length=2000)
    resume: Optional[str] = None
    expected_salary: Optional[int] = Field(None, ge=0)
    available_from: Optional[datetime] = None
    notice_period: Optional[int] = Field(None, ge=0, le=365)

    @field_validator("cover_letter")
    @classmethod
    def sanitize_cover_letter(cls, v):
        if v is None:
            return v
        v = sanitize_text(v)
        if not v:
            raise ValueError("Cover letter cannot be empty")
        return v

    @field_validator("resume")
    @classmethod
    def validate_resume(cls, v):
        return validate_pattern(v, URL_PATTERN, "Resume must be a valid URL")

class ApplicationStatusUpdate(BaseSchema):
    status: ApplicationStatus
    referrer_notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("referrer_notes")
    @classmethod
    def sanitize_notes(cls, v):
        return sanitize_text(v) if v is not None else v

class MessageCreate(BaseSchema):
    message: str = Field(..., min_length=1, max_length=1000)

    @field_validator("message")
    @classmethod
    def sanitize_message(cls, v):
        v = sanitize_text(v)
        if not v:
            raise ValueError("Message cannot be empty")
        return v

class CommunicationEntry(BaseSchema):
    message: str
    sender: MessageSender
    timestamp: datetime

class ReferralBrief(BaseSchema):
    id: uuid.UUID
    title: str
    company: str
    location: str
    job_type: JobType

class ApplicationResponse(BaseSchema):
    id: uuid.UUID
    referral_id: uuid.UUID
    job_seeker_id: uuid.UUID
    referrer_id: uuid.UUID
    referral: Optional[ReferralBrief] = None
    job_seeker: Optional[UserSummary] = None
    referrer: Optional[UserSummary] = None
    cover_letter: str
    resume: Optional[str] = None
    status: ApplicationStatus
    referrer_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    expected_salary: Optional[int] = None
    available_from: Optional[datetime] = None
    notice_period: Optional[int] = None
    source: ApplicationSource
    priority: ApplicationPriority
    last_contacted_at: Optional[datetime] = None
    communication_history: List[CommunicationEntry] = []
    created_at: datetime
    updated_at: datetime

class QuotaResponse(BaseSchema):
    """Free-tier weekly quota; limit and remaining are null for subscribers"""
    limit: Optional[int] = None
    used: int
    remaining: Optional[int] = None
    week_start: datetime
    resets_at: datetime
    unlimited: bool

class ApplicationCreateResponse(BaseSchema):
    message: str
    application: ApplicationResponse
    quota: QuotaResponse

class ApplicationDetailResponse(BaseSchema):
    success: bool = True
    data: ApplicationResponse

class ApplicationListResponse(BaseSchema):
    success: bool = True
    count: int
    page: int
    pages: int
    total: int
    data: List[ApplicationResponse]

class ApplicationStatsResponse(BaseSchema):
    total: int
    by_status: Dict[str, int]
