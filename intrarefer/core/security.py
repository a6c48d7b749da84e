"""
Security utilities for authentication and authorization
Handles JWT tokens, password hashing, and role checks
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from .config import settings
from .database import get_db
from .exceptions import ForbiddenException, UnauthorizedException, SubscriptionRequiredException

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Security scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)

class SecurityUtils:
    """Security utility functions"""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify password against hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password using bcrypt"""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: Dict[str, Any]) -> str:
        """Create JWT access token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """Decode and validate JWT token"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except ExpiredSignatureError:
            raise UnauthorizedException("Token expired", error_code="TOKEN_EXPIRED")
        except JWTError:
            raise UnauthorizedException("Invalid token", error_code="INVALID_TOKEN")

def create_user_token(user) -> str:
    """Issue an access token for a user"""
    return SecurityUtils.create_access_token({
        "sub": str(user.id),
        "role": user.role.value if hasattr(user.role, "value") else user.role,
    })

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user (required)
    Raises 401 if token missing, invalid, user not found or deactivated
    """
    from intrarefer.models import User

    if credentials is None:
        raise UnauthorizedException("Access token required")

    payload = SecurityUtils.decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type", error_code="INVALID_TOKEN")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise UnauthorizedException("Invalid token", error_code="INVALID_TOKEN")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UnauthorizedException("Invalid token - user not found")

    if not user.is_active:
        raise UnauthorizedException("Account is deactivated", error_code="ACCOUNT_DEACTIVATED")

    return user

async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """Get current user when a token is sent, None for anonymous requests"""
    if credentials is None:
        return None
    return await get_current_user(credentials, db)

# Role-based access control
def require_role(allowed_roles: List[str]):
    """Dependency factory that checks the user role"""
    async def role_checker(current_user=Depends(get_current_user)):
        if current_user.role.value not in allowed_roles:
            raise ForbiddenException(
                f"Access denied. Required role: {' or '.join(allowed_roles)}"
            )
        return current_user
    return role_checker

async def require_subscription(current_user=Depends(get_current_user)):
    """Premium feature gate; admins always pass"""
    if current_user.role.value == "admin":
        return current_user

    if not current_user.is_subscription_active():
        raise SubscriptionRequiredException()

    return current_user

# Specific role dependencies
require_admin = require_role(["admin"])
require_job_seeker = require_role(["jobSeeker"])
require_referrer = require_role(["referrer", "admin"])
