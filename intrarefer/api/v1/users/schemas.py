"""User profile schemas"""

from pydantic import Field, field_validator
from typing import List, Optional

from intrarefer.schemas.base import BaseSchema, UserResponse
from intrarefer.utils.validators import (
    GITHUB_PATTERN,
    LINKEDIN_PATTERN,
    PHONE_PATTERN,
    URL_PATTERN,
    normalize_text,
    sanitize_text,
    validate_pattern,
    validate_string_list,
)

COMMON_FIELDS = ["name", "phone", "location", "bio", "avatar", "linkedin", "github", "portfolio"]
JOB_SEEKER_FIELDS = ["skills", "experience", "resume", "desired_roles"]
REFERRER_FIELDS = ["company", "position", "department", "years_at_company"]

class ProfileUpdate(BaseSchema):
    """
    Profile update; every field optional

    Fields outside the caller's role are ignored by the service.
    """
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = None
    location: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    portfolio: Optional[str] = None

    # Job seeker
    skills: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0, le=50)
    resume: Optional[str] = None
    desired_roles: Optional[List[str]] = None

    # Referrer
    company: Optional[str] = Field(None, min_length=2, max_length=100)
    position: Optional[str] = Field(None, min_length=2, max_length=100)
    department: Optional[str] = Field(None, min_length=2, max_length=100)
    years_at_company: Optional[int] = Field(None, ge=0)

    @field_validator("name", "location", "company", "position", "department")
    @classmethod
    def normalize_fields(cls, v):
        return normalize_text(v) if v is not None else v

    @field_validator("bio")
    @classmethod
    def sanitize_bio(cls, v):
        return sanitize_text(v) if v is not None else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_pattern(v, PHONE_PATTERN, "Please enter a valid 10-digit phone number")

    @field_validator("linkedin")
    @classmethod
    def validate_linkedin(cls, v):
        return validate_pattern(v, LINKEDIN_PATTERN, "Please enter a valid LinkedIn URL")

    @field_validator("github")
    @classmethod
    def validate_github(cls, v):
        return validate_pattern(v, GITHUB_PATTERN, "Please enter a valid GitHub URL")

    @field_validator("avatar", "portfolio", "resume")
    @classmethod
    def validate_url(cls, v):
        return validate_pattern(v, URL_PATTERN, "Please enter a valid URL")

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v):
        if v is None:
            return v
        return validate_string_list(v, "Skills", 50, allow_empty=True)

    @field_validator("desired_roles")
    @classmethod
    def validate_desired_roles(cls, v):
        if v is None:
            return v
        return validate_string_list(v, "Desired roles", 100, allow_empty=True)

class ProfileResponse(BaseSchema):
    message: Optional[str] = None
    user: UserResponse
