"""
Authentication API routes
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from intrarefer.core.config import settings
from intrarefer.core.database import get_db
from intrarefer.core.rate_limit import limiter
from intrarefer.core.security import get_current_user, create_user_token
from intrarefer.schemas.base import MessageResponse, UserResponse
from .schemas import RegisterRequest, LoginRequest, ChangePasswordRequest, AuthResponse
from .services import AuthService

router = APIRouter()

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Register a job seeker or referrer account"
)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def register(
    request: Request,
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """Register new user"""
    service = AuthService(db)
    user = await service.register(data)

    return AuthResponse(
        message="User registered successfully",
        token=create_user_token(user),
        user=UserResponse.model_validate(user)
    )

@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login user",
    description="Login with email and password"
)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def login(
    request: Request,
    data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login user"""
    service = AuthService(db)
    user = await service.authenticate(data)

    return AuthResponse(
        message="Login successful",
        token=create_user_token(user),
        user=UserResponse.model_validate(user)
    )

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user"
)
async def get_me(current_user=Depends(get_current_user)):
    """Get current user information"""
    return UserResponse.model_validate(current_user)

@router.post(
    "/refresh",
    response_model=AuthResponse,
    summary="Refresh access token"
)
async def refresh_token(current_user=Depends(get_current_user)):
    """Issue a fresh token for a still-valid one"""
    return AuthResponse(
        message="Token refreshed successfully",
        token=create_user_token(current_user)
    )

@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout user"
)
async def logout(current_user=Depends(get_current_user)):
    """
    Logout user
    Tokens are stateless; the client discards its copy
    """
    return MessageResponse(message="Logout successful")

@router.put(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password"
)
async def change_password(
    data: ChangePasswordRequest,
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = AuthService(db)
    await service.change_password(current_user, data)
    return MessageResponse(message="Password changed successfully")

@router.post(
    "/deactivate",
    response_model=MessageResponse,
    summary="Deactivate account"
)
async def deactivate_account(
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = AuthService(db)
    await service.deactivate(current_user)
    return MessageResponse(message="Account deactivated successfully")
