"""
User profile routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from intrarefer.core.database import get_db
from intrarefer.core.security import get_current_user
from intrarefer.schemas.base import UserResponse
from .schemas import ProfileUpdate, ProfileResponse
from .services import UserService

router = APIRouter()

@router.get("/profile", response_model=ProfileResponse, summary="Get my profile")
async def get_profile(current_user=Depends(get_current_user)):
    return ProfileResponse(user=UserResponse.model_validate(current_user))

@router.put("/profile", response_model=ProfileResponse, summary="Update my profile")
async def update_profile(
    data: ProfileUpdate,
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update the caller's profile; fields outside their role are ignored"""
    service = UserService(db)
    user = await service.update_profile(current_user, data)
    return ProfileResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(user)
    )
