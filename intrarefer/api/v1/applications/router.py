"""
Application API routes
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from intrarefer.core.database import get_db
from intrarefer.core.security import get_current_user, require_job_seeker, require_referrer
from intrarefer.models.application import ApplicationStatus
from intrarefer.services.quota import quota_snapshot
from intrarefer.utils.helpers import utc_now
from .schemas import (
    ApplicationCreate,
    ApplicationCreateResponse,
    ApplicationDetailResponse,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatsResponse,
    ApplicationStatusUpdate,
    ApplicationUpdate,
    MessageCreate,
    QuotaResponse
)
from .services import ApplicationService

router = APIRouter()

@router.post(
    "",
    response_model=ApplicationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to a referral",
    description="Free-tier job seekers are limited to a number of applications per week"
)
async def create_application(
    data: ApplicationCreate,
    current_user=Depends(require_job_seeker),
    db: AsyncSession = Depends(get_db)
):
    now = utc_now()
    service = ApplicationService(db)
    application = await service.create_application(current_user, data, now)
    await db.refresh(current_user)

    return ApplicationCreateResponse(
        message="Application submitted successfully",
        application=ApplicationResponse.model_validate(application),
        quota=QuotaResponse(**quota_snapshot(current_user, now))
    )

@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List my applications",
    description="Job seekers see their own applications, referrers those sent to them, admins all"
)
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    result = await service.list_applications(current_user, status_filter, page, limit)

    return ApplicationListResponse(
        count=len(result["items"]),
        page=result["page"],
        pages=result["pages"],
        total=result["total"],
        data=[ApplicationResponse.model_validate(item) for item in result["items"]]
    )

@router.get("/stats", response_model=ApplicationStatsResponse, summary="Application statistics")
async def get_application_stats(
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    return ApplicationStatsResponse(**await service.get_statistics(current_user))

@router.get("/quota", response_model=QuotaResponse, summary="Weekly application quota")
async def get_quota(current_user=Depends(require_job_seeker)):
    """Read-only; never resets the stored counter"""
    return QuotaResponse(**quota_snapshot(current_user, utc_now()))

@router.get("/{application_id}", response_model=ApplicationDetailResponse, summary="Get application")
async def get_application(
    application_id: uuid.UUID,
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    application = await service.get_application(application_id, current_user)
    return ApplicationDetailResponse(data=ApplicationResponse.model_validate(application))

@router.patch(
    "/{application_id}/status",
    response_model=ApplicationDetailResponse,
    summary="Review an application"
)
async def update_application_status(
    application_id: uuid.UUID,
    data: ApplicationStatusUpdate,
    current_user=Depends(require_referrer),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    application = await service.get_application(application_id, current_user)
    application = await service.update_status(
        application,
        current_user,
        ApplicationStatus(data.status),
        data.referrer_notes,
        utc_now()
    )
    return ApplicationDetailResponse(data=ApplicationResponse.model_validate(application))

@router.post(
    "/{application_id}/withdraw",
    response_model=ApplicationDetailResponse,
    summary="Withdraw an application"
)
async def withdraw_application(
    application_id: uuid.UUID,
    current_user=Depends(require_job_seeker),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    application = await service.get_application(application_id, current_user)
    application = await service.withdraw(application, current_user)
    return ApplicationDetailResponse(data=ApplicationResponse.model_validate(application))

@router.patch(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    summary="Edit a pending application"
)
async def edit_application(
    application_id: uuid.UUID,
    data: ApplicationUpdate,
    current_user=Depends(require_job_seeker),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    application = await service.get_application(application_id, current_user)
    application = await service.edit(application, current_user, data)
    return ApplicationDetailResponse(data=ApplicationResponse.model_validate(application))

@router.post(
    "/{application_id}/messages",
    response_model=ApplicationDetailResponse,
    summary="Message the other party"
)
async def add_message(
    application_id: uuid.UUID,
    data: MessageCreate,
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ApplicationService(db)
    application = await service.get_application(application_id, current_user)
    application = await service.add_message(application, current_user, data.message, utc_now())
    return ApplicationDetailResponse(data=ApplicationResponse.model_validate(application))
