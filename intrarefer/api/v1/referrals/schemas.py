"""
Referral schemas for request/response validation
"""

from pydantic import Field, field_validator, model_validator
from typing import List, Literal, Optional
from datetime import datetime
import uuid

from intrarefer.models.referral import ExperienceLevel, JobType, ReferralStatus, Urgency, WorkMode
from intrarefer.schemas.base import BaseSchema, UserSummary
from intrarefer.utils.helpers import ensure_aware, utc_now
from intrarefer.utils.validators import normalize_text, sanitize_text, validate_string_list

class SalaryRange(BaseSchema):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)
    currency: str = Field("INR", min_length=1, max_length=3)

    @model_validator(mode="after")
    def check_range(self):
        if self.max < self.min:
            raise ValueError("Maximum salary cannot be less than minimum salary")
        return self

class ReferralCreate(BaseSchema):
    """Schema for posting a referral"""
    title: str = Field(..., min_length=1, max_length=100)
    company: str = Field(..., min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=50)
    location: str = Field(..., min_length=1, max_length=200)
    job_type: JobType
    experience_level: ExperienceLevel
    description: str = Field(..., min_length=1, max_length=2000)
    requirements: List[str]
    skills: List[str]
    benefits: List[str] = []
    salary_range: SalaryRange
    application_deadline: datetime
    work_mode: WorkMode
    status: Literal["draft", "active", "closed"] = "active"
    urgency: Urgency = Urgency.MEDIUM
    is_priority: bool = False

    @field_validator("title", "company", "department", "location")
    @classmethod
    def normalize_fields(cls, v):
        if v is None:
            return v
        v = normalize_text(v)
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v):
        v = sanitize_text(v)
        if not v:
            raise ValueError("Job description is required")
        return v

    @field_validator("requirements")
    @classmethod
    def validate_requirements(cls, v):
        return validate_string_list(v, "Requirements", 200)

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v):
        return validate_string_list(v, "Skills", 50)

    @field_validator("benefits")
    @classmethod
    def validate_benefits(cls, v):
        return validate_string_list(v, "Benefits", 200, allow_empty=True)

    @field_validator("application_deadline")
    @classmethod
    def validate_deadline(cls, v):
        v = ensure_aware(v)
        if v <= utc_now():
            raise ValueError("Application deadline must be in the future.")
        return v

class ReferralStatusUpdate(BaseSchema):
    status: ReferralStatus

class ReferralResponse(BaseSchema):
    """Referral as seen by clients; status is evaluated at read time"""
    id: uuid.UUID
    referrer_id: uuid.UUID
    referrer: Optional[UserSummary] = None
    title: str
    company: str
    department: Optional[str] = None
    location: str
    job_type: JobType
    experience_level: ExperienceLevel
    description: str
    requirements: List[str] = []
    skills: List[str] = []
    benefits: List[str] = []
    salary_range: Optional[SalaryRange] = None
    application_deadline: Optional[datetime] = None
    days_until_deadline: Optional[int] = None
    status: ReferralStatus
    is_active: bool
    views: int
    application_count: int
    is_priority: bool
    work_mode: WorkMode
    urgency: Urgency
    created_at: datetime
    updated_at: datetime

class ReferralDetailResponse(BaseSchema):
    success: bool = True
    data: ReferralResponse

class ReferralCreateResponse(BaseSchema):
    message: str
    referral: ReferralResponse

class ReferralListResponse(BaseSchema):
    success: bool = True
    count: int
    page: int
    pages: int
    total: int
    data: List[ReferralResponse]

class MatchScoreResponse(BaseSchema):
    referral_id: uuid.UUID
    score: int
    matched_skills: List[str]
