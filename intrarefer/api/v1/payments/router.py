"""
Payment API routes
"""

from fastapi import APIRouter, Depends, Header, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from intrarefer.core.database import get_db
from intrarefer.core.security import get_current_user, require_job_seeker
from intrarefer.schemas.base import UserResponse
from intrarefer.services.subscription import list_plans
from intrarefer.utils.helpers import utc_now
from .razorpay_client import RazorpayClient, get_payment_gateway
from .schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentHistoryResponse,
    PaymentResponse,
    PlansResponse,
    SubscriptionInfo,
    SubscriptionStatusResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookAck
)
from .services import PaymentService

router = APIRouter()

def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None

@router.get(
    "/plans",
    response_model=PlansResponse,
    summary="Subscription plans"
)
async def get_plans():
    """Public list of plans and prices"""
    return PlansResponse(plans=list_plans())

@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create subscription order",
    description="Create a gateway order for a subscription plan"
)
async def create_order(
    request: Request,
    data: CreateOrderRequest,
    current_user=Depends(require_job_seeker),
    gateway: RazorpayClient = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
):
    service = PaymentService(db, gateway)
    result = await service.create_order(
        current_user,
        data.subscription_type,
        utc_now(),
        user_agent=request.headers.get("User-Agent"),
        ip_address=client_ip(request)
    )
    return CreateOrderResponse(**result)

@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    summary="Verify payment",
    description="Verify the checkout signature and activate the subscription"
)
async def verify_payment(
    data: VerifyPaymentRequest,
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    now = utc_now()
    service = PaymentService(db)
    payment = await service.verify_payment(current_user, data, now)
    await db.refresh(current_user)

    return VerifyPaymentResponse(
        message="Payment verified and subscription activated",
        subscription=SubscriptionInfo(
            is_active=current_user.is_subscription_active(now),
            type=payment.subscription_type,
            start_date=payment.subscription_start,
            end_date=payment.subscription_end
        ),
        user=UserResponse.model_validate(current_user)
    )

@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Gateway webhook",
    description="Signed by the gateway; no user session"
)
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
):
    body = await request.body()
    service = PaymentService(db)
    await service.handle_webhook(body, x_razorpay_signature, utc_now())
    return WebhookAck()

@router.get(
    "/subscription-status",
    response_model=SubscriptionStatusResponse,
    summary="Current subscription"
)
async def get_subscription_status(
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PaymentService(db)
    return SubscriptionStatusResponse(**await service.get_subscription_status(current_user, utc_now()))

@router.get(
    "/history",
    response_model=PaymentHistoryResponse,
    summary="Get payment history",
    description="Get user's payment history, newest first"
)
async def get_payment_history(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    current_user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = PaymentService(db)
    result = await service.get_history(current_user, page, size)

    return PaymentHistoryResponse(
        payments=[PaymentResponse.model_validate(payment) for payment in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        pages=result["pages"]
    )
