"""
Authentication schemas for request/response validation
"""

from pydantic import EmailStr, Field, field_validator
from typing import Literal, Optional

from intrarefer.schemas.base import BaseSchema, UserResponse
from intrarefer.utils.validators import normalize_text

class RegisterRequest(BaseSchema):
    """User registration request; admins are never self-registered"""
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Literal["jobSeeker", "referrer"] = "jobSeeker"

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v):
        v = normalize_text(v)
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()

class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()

class ChangePasswordRequest(BaseSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

class AuthResponse(BaseSchema):
    """Token plus the authenticated user's profile"""
    message: str
    token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None
