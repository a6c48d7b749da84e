"""
Application service layer
Applying to referrals, reviewing and messaging
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
import uuid
import logging

from intrarefer.models import (
    Application,
    ApplicationStatus,
    MessageSender,
    Referral,
    User,
    UserRole,
)
from intrarefer.models.application import ApplicationSource
from intrarefer.core.config import settings
from intrarefer.core.exceptions import (
    ApplicationLimitException,
    BadRequestException,
    ConflictException,
    DuplicateApplicationException,
    ForbiddenException,
    NotFoundException,
)
from intrarefer.services.quota import reserve_application_slot
from intrarefer.services.state_machine import application_state_machine
from intrarefer.utils.pagination import paginate
from .schemas import ApplicationCreate, ApplicationUpdate

logger = logging.getLogger(__name__)

class ApplicationService:
    """Application service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_relations(self, query):
        return query.options(
            selectinload(Application.referral),
            selectinload(Application.job_seeker),
            selectinload(Application.referrer)
        )

    @staticmethod
    def _scope(query, user: User):
        """Restrict to applications the user takes part in"""
        role = UserRole(user.role)
        if role == UserRole.JOB_SEEKER:
            return query.where(Application.job_seeker_id == user.id)
        if role == UserRole.REFERRER:
            return query.where(Application.referrer_id == user.id)
        return query

    async def _fetch(self, application_id: uuid.UUID) -> Application:
        result = await self.db.execute(
            self._with_relations(select(Application))
            .where(Application.id == application_id)
            .execution_options(populate_existing=True)
        )
        application = result.scalar_one_or_none()
        if not application:
            raise NotFoundException("Application not found", error_code="APPLICATION_NOT_FOUND")
        return application

    async def create_application(self, job_seeker: User, data: ApplicationCreate, now: datetime) -> Application:
        """
        Apply to a referral

        The referral must be open. Free-tier users take a quota slot first;
        a full quota rejects the request before anything is inserted. The
        application, the quota slot and the referral's counter are written
        in the request's transaction.

        Raises:
            NotFoundException: Unknown referral
            BadRequestException: Referral not accepting applications
            DuplicateApplicationException: Already applied
            ApplicationLimitException: Weekly quota used up
        """
        result = await self.db.execute(select(Referral).where(Referral.id == data.referral_id))
        referral = result.scalar_one_or_none()
        if not referral:
            raise NotFoundException("Referral not found", error_code="REFERRAL_NOT_FOUND")

        if not referral.is_accepting_applications(now):
            raise BadRequestException(
                "This referral is no longer accepting applications",
                error_code="REFERRAL_NOT_ACCEPTING"
            )

        existing = await self.db.scalar(
            select(Application.id).where(
                Application.referral_id == referral.id,
                Application.job_seeker_id == job_seeker.id
            )
        )
        if existing:
            raise DuplicateApplicationException()

        if not job_seeker.is_subscription_active(now):
            if not await reserve_application_slot(self.db, job_seeker.id, now):
                raise ApplicationLimitException(settings.WEEKLY_APPLICATION_LIMIT)

        application = Application(
            referral_id=referral.id,
            job_seeker_id=job_seeker.id,
            referrer_id=referral.referrer_id,
            cover_letter=data.cover_letter,
            resume=data.resume or job_seeker.resume or "",
            expected_salary=data.expected_salary,
            available_from=data.available_from,
            notice_period=data.notice_period,
            source=ApplicationSource(data.source),
            status=ApplicationStatus.PENDING,
            communication_history=[]
        )
        self.db.add(application)

        try:
            await self.db.flush()
        except IntegrityError:
            raise DuplicateApplicationException()

        await self.db.execute(
            update(Referral)
            .where(Referral.id == referral.id)
            .values(application_count=Referral.application_count + 1)
            .execution_options(synchronize_session=False)
        )

        logger.info(f"Application {application.id} created by {job_seeker.id} for referral {referral.id}")
        return await self._fetch(application.id)

    async def list_applications(
        self,
        user: User,
        status: Optional[ApplicationStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        query = self._scope(self._with_relations(select(Application)), user)
        if status:
            query = query.where(Application.status == status)
        query = query.order_by(Application.created_at.desc(), Application.id)

        limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)
        return await paginate(self.db, query, page, limit)

    async def get_statistics(self, user: User) -> Dict[str, Any]:
        """Application counts by status within the user's scope"""
        query = self._scope(
            select(Application.status, func.count(Application.id)).group_by(Application.status),
            user
        )
        result = await self.db.execute(query)

        by_status = {status.value: 0 for status in ApplicationStatus}
        for status, count in result.all():
            by_status[ApplicationStatus(status).value] = count

        return {"total": sum(by_status.values()), "by_status": by_status}

    async def get_application(self, application_id: uuid.UUID, user: User) -> Application:
        """Load an application the user takes part in; admins see all"""
        application = await self._fetch(application_id)

        role = UserRole(user.role)
        if role != UserRole.ADMIN and user.id not in (application.job_seeker_id, application.referrer_id):
            raise ForbiddenException("Not authorized to access this application")
        return application

    async def _guarded_update(self, application: Application, values: Dict[str, Any]) -> Application:
        """Write `values` only if nobody changed the application since it was read"""
        result = await self.db.execute(
            update(Application)
            .where(
                Application.id == application.id,
                Application.status == application.status,
                Application.updated_at == application.updated_at
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictException(
                "Application was modified concurrently, please retry",
                error_code="APPLICATION_CONFLICT"
            )
        return await self._fetch(application.id)

    async def update_status(
        self,
        application: Application,
        actor: User,
        new_status: ApplicationStatus,
        referrer_notes: Optional[str],
        now: datetime
    ) -> Application:
        """Referrer (or admin) review decision"""
        if UserRole(actor.role) != UserRole.ADMIN and application.referrer_id != actor.id:
            raise ForbiddenException("Only the referrer can update this application")

        if new_status == ApplicationStatus.WITHDRAWN:
            raise BadRequestException("Only the applicant can withdraw an application")

        application_state_machine.transition(application.status, new_status)

        values: Dict[str, Any] = {"status": new_status, "reviewed_at": now}
        if referrer_notes:
            values["referrer_notes"] = referrer_notes

        application = await self._guarded_update(application, values)
        logger.info(f"Application {application.id} moved to {new_status.value} by {actor.id}")
        return application

    async def withdraw(self, application: Application, actor: User) -> Application:
        if application.job_seeker_id != actor.id:
            raise ForbiddenException("Only the applicant can withdraw this application")

        if not application.can_be_withdrawn():
            raise BadRequestException(
                "Application cannot be withdrawn in its current status",
                error_code="INVALID_STATUS_TRANSITION"
            )
        application_state_machine.transition(application.status, ApplicationStatus.WITHDRAWN)

        application = await self._guarded_update(application, {"status": ApplicationStatus.WITHDRAWN})
        logger.info(f"Application {application.id} withdrawn")
        return application

    async def edit(self, application: Application, actor: User, data: ApplicationUpdate) -> Application:
        if application.job_seeker_id != actor.id:
            raise ForbiddenException("Only the applicant can edit this application")

        if not application.can_be_updated_by_job_seeker():
            raise BadRequestException(
                "Application can only be edited while pending",
                error_code="APPLICATION_LOCKED"
            )

        values = data.model_dump(exclude_unset=True)
        if not values:
            return application
        return await self._guarded_update(application, values)

    async def add_message(self, application: Application, actor: User, message: str, now: datetime) -> Application:
        """Append to the conversation between applicant and referrer"""
        if actor.id == application.job_seeker_id:
            sender = MessageSender.JOB_SEEKER
        elif actor.id == application.referrer_id:
            sender = MessageSender.REFERRER
        else:
            raise ForbiddenException("Only the applicant and the referrer can message on this application")

        history = list(application.communication_history or [])
        history.append({
            "message": message,
            "sender": sender.value,
            "timestamp": now.isoformat()
        })

        return await self._guarded_update(application, {
            "communication_history": history,
            "last_contacted_at": now
        })
