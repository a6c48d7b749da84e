"""API v1 routes aggregation"""

from fastapi import APIRouter

from .auth.router import router as auth_router
from .users.router import router as users_router
from .referrals.router import router as referrals_router
from .applications.router import router as applications_router
from .payments.router import router as payments_router
from .admin.router import router as admin_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])
api_router.include_router(referrals_router, prefix="/referrals", tags=["Referrals"])
api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])
api_router.include_router(payments_router, prefix="/payments", tags=["Payments"])
api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
