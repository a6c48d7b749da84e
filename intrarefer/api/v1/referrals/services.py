"""
Referral service layer
Posting, browsing and lifecycle of referrals
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, String, cast
from sqlalchemy.orm import selectinload
import uuid
import logging

from intrarefer.models import Referral, ReferralStatus, User, UserRole
from intrarefer.models.referral import ExperienceLevel, JobType, Urgency, WorkMode
from intrarefer.core.config import settings
from intrarefer.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from intrarefer.services.matching import calculate_match_score, matched_skills
from intrarefer.services.state_machine import referral_state_machine
from intrarefer.utils.pagination import paginate
from intrarefer.schemas.base import UserSummary
from .schemas import ReferralCreate, ReferralResponse, SalaryRange

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": Referral.created_at,
    "updatedAt": Referral.updated_at,
    "title": Referral.title,
    "company": Referral.company,
    "views": Referral.views,
    "applicationCount": Referral.application_count,
    "applicationDeadline": Referral.application_deadline,
    "salaryMin": Referral.salary_min,
}

def open_referral_filter(now: datetime):
    """Active, enabled and not past the deadline"""
    return and_(
        Referral.status == ReferralStatus.ACTIVE,
        Referral.is_active.is_(True),
        or_(
            Referral.application_deadline.is_(None),
            Referral.application_deadline > now
        )
    )

def status_filter(status: ReferralStatus, now: datetime):
    """Match referrals by their status as observed at `now`"""
    deadline = Referral.application_deadline
    if status == ReferralStatus.EXPIRED:
        return or_(
            Referral.status == ReferralStatus.EXPIRED,
            and_(Referral.status == ReferralStatus.ACTIVE, deadline.is_not(None), deadline < now)
        )
    if status == ReferralStatus.ACTIVE:
        return and_(
            Referral.status == ReferralStatus.ACTIVE,
            or_(deadline.is_(None), deadline >= now)
        )
    return Referral.status == status

def build_referral_response(referral: Referral, now: datetime, include_referrer: bool = True) -> ReferralResponse:
    """Render a referral with its status evaluated at `now`"""
    referrer = None
    if include_referrer and "referrer" in referral.__dict__ and referral.referrer is not None:
        referrer = UserSummary.model_validate(referral.referrer)

    salary_range = None
    if referral.salary_min is not None and referral.salary_max is not None:
        salary_range = SalaryRange(
            min=referral.salary_min,
            max=referral.salary_max,
            currency=referral.salary_currency
        )

    return ReferralResponse(
        id=referral.id,
        referrer_id=referral.referrer_id,
        referrer=referrer,
        title=referral.title,
        company=referral.company,
        department=referral.department,
        location=referral.location,
        job_type=referral.job_type,
        experience_level=referral.experience_level,
        description=referral.description,
        requirements=referral.requirements or [],
        skills=referral.skills or [],
        benefits=referral.benefits or [],
        salary_range=salary_range,
        application_deadline=referral.application_deadline,
        days_until_deadline=referral.days_until_deadline(now),
        status=referral.effective_status(now),
        is_active=referral.is_active,
        views=referral.views,
        application_count=referral.application_count,
        is_priority=referral.is_priority,
        work_mode=referral.work_mode,
        urgency=referral.urgency,
        created_at=referral.created_at,
        updated_at=referral.updated_at
    )

class ReferralService:
    """Referral service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_referral(self, referrer: User, data: ReferralCreate) -> Referral:
        """Post a referral on behalf of a referrer or admin"""
        referral = Referral(
            referrer_id=referrer.id,
            title=data.title,
            company=data.company,
            department=data.department,
            location=data.location,
            job_type=JobType(data.job_type),
            experience_level=ExperienceLevel(data.experience_level),
            description=data.description,
            requirements=data.requirements,
            skills=data.skills,
            benefits=data.benefits,
            salary_min=data.salary_range.min,
            salary_max=data.salary_range.max,
            salary_currency=data.salary_range.currency,
            application_deadline=data.application_deadline,
            work_mode=WorkMode(data.work_mode),
            status=ReferralStatus(data.status),
            urgency=Urgency(data.urgency),
            is_priority=data.is_priority,
            views=0,
            application_count=0,
            is_active=True
        )
        self.db.add(referral)
        await self.db.flush()
        await self.db.refresh(referral)

        logger.info(f"Referral {referral.id} posted by {referrer.id}")
        return referral

    async def get_referral(self, referral_id: uuid.UUID, with_referrer: bool = False) -> Referral:
        query = select(Referral).where(Referral.id == referral_id)
        if with_referrer:
            query = query.options(selectinload(Referral.referrer))

        result = await self.db.execute(query)
        referral = result.scalar_one_or_none()
        if not referral:
            raise NotFoundException("Referral not found", error_code="REFERRAL_NOT_FOUND")
        return referral

    async def list_referrals(
        self,
        viewer: Optional[User],
        now: datetime,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        order: str = "desc",
        search: Optional[str] = None,
        location: Optional[str] = None,
        job_type: Optional[JobType] = None,
        experience_level: Optional[ExperienceLevel] = None,
        skills: Optional[str] = None,
        company: Optional[str] = None,
        work_mode: Optional[WorkMode] = None,
        status: Optional[ReferralStatus] = None,
        my_referrals: bool = False
    ) -> Dict[str, Any]:
        """
        Browse referrals

        Anonymous users, job seekers and referrers browsing the board see
        open referrals only. Referrers listing their own, and admins, see
        every status and may filter by it.
        """
        query = select(Referral).options(selectinload(Referral.referrer))

        role = UserRole(viewer.role) if viewer else None
        if role == UserRole.ADMIN:
            if status:
                query = query.where(status_filter(status, now))
        elif role == UserRole.REFERRER and my_referrals:
            query = query.where(Referral.referrer_id == viewer.id)
            if status:
                query = query.where(status_filter(status, now))
        else:
            query = query.where(open_referral_filter(now))

        if location:
            query = query.where(Referral.location.ilike(f"%{location}%"))
        if job_type:
            query = query.where(Referral.job_type == job_type)
        if experience_level:
            query = query.where(Referral.experience_level == experience_level)
        if work_mode:
            query = query.where(Referral.work_mode == work_mode)
        if company:
            query = query.where(Referral.company.ilike(f"%{company}%"))
        if skills:
            wanted = [skill.strip() for skill in skills.split(",") if skill.strip()]
            if wanted:
                skills_text = cast(Referral.skills, String)
                query = query.where(or_(*[skills_text.ilike(f"%{skill}%") for skill in wanted]))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(
                Referral.title.ilike(pattern),
                Referral.description.ilike(pattern),
                Referral.company.ilike(pattern),
                cast(Referral.skills, String).ilike(pattern)
            ))

        sort_column = SORT_COLUMNS.get(sort_by, Referral.created_at)
        sort_clause = sort_column.asc() if order == "asc" else sort_column.desc()
        query = query.order_by(sort_clause, Referral.id)

        limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)
        return await paginate(self.db, query, max(page, 1), limit)

    async def record_view(self, referral: Referral, viewer: Optional[User]) -> None:
        """Count a view unless the referrer is looking at their own posting"""
        if viewer is not None and viewer.id == referral.referrer_id:
            return

        await self.db.execute(
            update(Referral)
            .where(Referral.id == referral.id)
            .values(views=Referral.views + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(referral, attribute_names=["views"])

    async def update_status(self, referral: Referral, actor: User, new_status: ReferralStatus, now: datetime) -> Referral:
        """
        Move a referral through its lifecycle

        Only the owning referrer or an admin may do this. The check runs
        against the status as observed now, so an overdue active referral
        is treated as expired.
        """
        if UserRole(actor.role) != UserRole.ADMIN and referral.referrer_id != actor.id:
            raise ForbiddenException("Not authorized to update this referral")

        stored = ReferralStatus(referral.status)
        referral_state_machine.transition(referral.effective_status(now), new_status)

        stored_status = new_status
        if new_status == ReferralStatus.ACTIVE and referral.is_expired(now):
            stored_status = ReferralStatus.EXPIRED

        result = await self.db.execute(
            update(Referral)
            .where(Referral.id == referral.id, Referral.status == stored)
            .values(status=stored_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictException("Referral was modified concurrently, please retry", error_code="STATUS_CONFLICT")

        await self.db.refresh(referral)
        logger.info(f"Referral {referral.id} status {stored.value} -> {stored_status.value} by {actor.id}")
        return referral

    def match_for(self, referral: Referral, candidate: User) -> Dict[str, Any]:
        return {
            "referral_id": referral.id,
            "score": calculate_match_score(referral.skills, candidate.skills),
            "matched_skills": matched_skills(referral.skills, candidate.skills)
        }
