"""
User profile service
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
import logging

from intrarefer.models import User, UserRole
from .schemas import COMMON_FIELDS, JOB_SEEKER_FIELDS, REFERRER_FIELDS, ProfileUpdate

logger = logging.getLogger(__name__)

ROLE_FIELDS = {
    UserRole.JOB_SEEKER: JOB_SEEKER_FIELDS,
    UserRole.REFERRER: REFERRER_FIELDS,
    UserRole.ADMIN: REFERRER_FIELDS,
}

class UserService:
    """Profile reads and edits"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def editable_fields(role: UserRole) -> list:
        return COMMON_FIELDS + ROLE_FIELDS.get(UserRole(role), [])

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        """
        Write only the profile fields that were sent

        Subscription and quota columns are never part of this update.
        """
        sent = data.model_dump(exclude_unset=True)
        allowed = set(self.editable_fields(user.role))
        values = {field: value for field, value in sent.items() if field in allowed}

        if values:
            await self.db.execute(
                update(User)
                .where(User.id == user.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            logger.info(f"Profile updated for user {user.id}: {sorted(values)}")

        await self.db.refresh(user)
        return user
