"""
Authentication service layer
Handles business logic for authentication
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
import logging

from intrarefer.models import User, UserRole
from intrarefer.core.security import SecurityUtils
from intrarefer.core.exceptions import BadRequestException, ConflictException, UnauthorizedException
from .schemas import RegisterRequest, LoginRequest, ChangePasswordRequest

logger = logging.getLogger(__name__)

class AuthService:
    """Authentication service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str):
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def register(self, data: RegisterRequest) -> User:
        """
        Register a job seeker or referrer

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.get_by_email(data.email):
            raise ConflictException("User already exists with this email", error_code="USER_EXISTS")

        user = User(
            name=data.name,
            email=data.email,
            password_hash=SecurityUtils.hash_password(data.password),
            role=UserRole(data.role),
            skills=[],
            desired_roles=[]
        )
        self.db.add(user)

        try:
            await self.db.flush()
        except IntegrityError:
            raise ConflictException("User already exists with this email", error_code="USER_EXISTS")

        await self.db.refresh(user)
        logger.info(f"User registered: {user.id} ({user.role.value})")
        return user

    async def authenticate(self, data: LoginRequest) -> User:
        """
        Check credentials

        Unknown email and wrong password produce the same error.
        """
        user = await self.get_by_email(data.email)
        if not user or not SecurityUtils.verify_password(data.password, user.password_hash):
            raise UnauthorizedException("Invalid credentials", error_code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise UnauthorizedException("Account is deactivated", error_code="ACCOUNT_DEACTIVATED")

        return user

    async def change_password(self, user: User, data: ChangePasswordRequest) -> None:
        if not SecurityUtils.verify_password(data.current_password, user.password_hash):
            raise BadRequestException("Current password is incorrect", error_code="INVALID_PASSWORD")

        await self.db.execute(
            update(User)
            .where(User.id == user.id)
            .values(password_hash=SecurityUtils.hash_password(data.new_password))
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Password changed for user {user.id}")

    async def deactivate(self, user: User) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user.id)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Account deactivated: {user.id}")
