"""
Referral API routes
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from intrarefer.core.database import get_db
from intrarefer.core.security import (
    get_current_user_optional,
    require_referrer,
    require_subscription
)
from intrarefer.models.referral import ExperienceLevel, JobType, ReferralStatus, WorkMode
from intrarefer.utils.helpers import utc_now
from .schemas import (
    MatchScoreResponse,
    ReferralCreate,
    ReferralCreateResponse,
    ReferralDetailResponse,
    ReferralListResponse,
    ReferralStatusUpdate
)
from .services import ReferralService, build_referral_response

router = APIRouter()

@router.post(
    "",
    response_model=ReferralCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a referral",
    description="Referrers and admins post a job they can refer candidates to"
)
async def create_referral(
    data: ReferralCreate,
    current_user=Depends(require_referrer),
    db: AsyncSession = Depends(get_db)
):
    service = ReferralService(db)
    referral = await service.create_referral(current_user, data)
    return ReferralCreateResponse(
        message="Referral posted successfully!",
        referral=build_referral_response(referral, utc_now(), include_referrer=False)
    )

@router.get(
    "",
    response_model=ReferralListResponse,
    summary="Browse referrals"
)
async def list_referrals(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = None,
    location: Optional[str] = None,
    job_type: Optional[JobType] = Query(None, alias="jobType"),
    experience_level: Optional[ExperienceLevel] = Query(None, alias="experienceLevel"),
    skills: Optional[str] = Query(None, description="Comma separated skills"),
    company: Optional[str] = None,
    work_mode: Optional[WorkMode] = Query(None, alias="workMode"),
    status_filter: Optional[ReferralStatus] = Query(None, alias="status"),
    my_referrals: bool = Query(False, alias="myReferrals"),
    current_user=Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db)
):
    """List referrals visible to the caller"""
    now = utc_now()
    service = ReferralService(db)
    result = await service.list_referrals(
        viewer=current_user,
        now=now,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
        search=search,
        location=location,
        job_type=job_type,
        experience_level=experience_level,
        skills=skills,
        company=company,
        work_mode=work_mode,
        status=status_filter,
        my_referrals=my_referrals
    )

    return ReferralListResponse(
        count=len(result["items"]),
        page=result["page"],
        pages=result["pages"],
        total=result["total"],
        data=[build_referral_response(referral, now) for referral in result["items"]]
    )

@router.get(
    "/{referral_id}",
    response_model=ReferralDetailResponse,
    summary="Get referral details"
)
async def get_referral(
    referral_id: uuid.UUID,
    current_user=Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db)
):
    """Referral detail; counts a view for anyone but its referrer"""
    service = ReferralService(db)
    referral = await service.get_referral(referral_id, with_referrer=True)
    await service.record_view(referral, current_user)
    return ReferralDetailResponse(data=build_referral_response(referral, utc_now()))

@router.patch(
    "/{referral_id}/status",
    response_model=ReferralDetailResponse,
    summary="Change referral status"
)
async def update_referral_status(
    referral_id: uuid.UUID,
    data: ReferralStatusUpdate,
    current_user=Depends(require_referrer),
    db: AsyncSession = Depends(get_db)
):
    now = utc_now()
    service = ReferralService(db)
    referral = await service.get_referral(referral_id)
    referral = await service.update_status(referral, current_user, ReferralStatus(data.status), now)
    return ReferralDetailResponse(data=build_referral_response(referral, now, include_referrer=False))

@router.get(
    "/{referral_id}/match",
    response_model=MatchScoreResponse,
    summary="Skill match score",
    description="Premium: how well the caller's skills cover the referral's"
)
async def get_match_score(
    referral_id: uuid.UUID,
    current_user=Depends(require_subscription),
    db: AsyncSession = Depends(get_db)
):
    service = ReferralService(db)
    referral = await service.get_referral(referral_id)
    return MatchScoreResponse(**service.match_for(referral, current_user))
