"""Shared base schemas"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime
import uuid

from intrarefer.models.user import UserRole

class BaseSchema(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True
    )

class MessageResponse(BaseSchema):
    success: bool = True
    message: str

class UserSummary(BaseSchema):
    """Minimal user view embedded in other resources"""
    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    company: Optional[str] = None
    position: Optional[str] = None

class UserResponse(BaseSchema):
    """Full profile of a user, without credentials"""
    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None

    skills: List[str] = []
    experience: Optional[int] = None
    resume: Optional[str] = None
    desired_roles: List[str] = []

    company: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    years_at_company: Optional[int] = None

    linkedin: Optional[str] = None
    github: Optional[str] = None
    portfolio: Optional[str] = None

    is_subscribed: bool = False
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    has_active_subscription: bool = False

    is_verified: bool = False
    is_active: bool = True
    created_at: datetime
