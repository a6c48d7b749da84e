"""Admin management endpoints"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from intrarefer.core.database import get_db
from intrarefer.core.security import require_admin
from intrarefer.api.v1.payments.razorpay_client import RazorpayClient, get_payment_gateway
from intrarefer.utils.helpers import ensure_aware, utc_now
from .schemas import (
    ActiveSubscriptionsResponse,
    AnomaliesResponse,
    PaymentStatsResponse,
    ReconcileResponse,
    RefundRequest,
    RefundResponse,
    RevenueResponse
)
from .services import AdminService

router = APIRouter()

@router.get("/payments/stats", response_model=PaymentStatsResponse)
async def get_payment_stats(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    current_user=Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Payment counts and totals by status"""
    start_date, end_date = ensure_aware(start_date), ensure_aware(end_date)
    service = AdminService(db)
    stats = await service.payment_statistics(start_date, end_date)
    return PaymentStatsResponse(start_date=start_date, end_date=end_date, stats=stats)

@router.get("/payments/revenue", response_model=RevenueResponse)
async def get_revenue(
    current_user=Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Paid revenue per month"""
    service = AdminService(db)
    return RevenueResponse(revenue=await service.revenue_by_month())

@router.get("/subscriptions/active", response_model=ActiveSubscriptionsResponse)
async def get_active_subscriptions(
    current_user=Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AdminService(db)
    subscriptions = await service.active_subscriptions(utc_now())
    return ActiveSubscriptionsResponse(count=len(subscriptions), subscriptions=subscriptions)

@router.post("/payments/{payment_id}/refund", response_model=RefundResponse)
async def refund_payment(
    payment_id: uuid.UUID,
    data: RefundRequest,
    current_user=Depends(require_admin),
    gateway: RazorpayClient = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
):
    """Refund a paid subscription; a full refund ends the user's subscription"""
    service = AdminService(db)
    payment = await service.refund_payment(payment_id, data, gateway, utc_now())
    return RefundResponse(
        payment_id=payment.id,
        refund_id=payment.refund_id,
        refund_amount=payment.refund_amount,
        status=payment.status
    )

@router.get("/subscriptions/anomalies", response_model=AnomaliesResponse)
async def get_subscription_anomalies(
    current_user=Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Paid payments whose subscription is not reflected on the user"""
    service = AdminService(db)
    anomalies = await service.subscription_anomalies(utc_now())
    return AnomaliesResponse(count=len(anomalies), anomalies=anomalies)

@router.post("/subscriptions/reconcile", response_model=ReconcileResponse)
async def reconcile_subscriptions(
    current_user=Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Repair anomalies now instead of waiting for the scheduled job"""
    service = AdminService(db)
    repaired = await service.reconcile(utc_now())
    return ReconcileResponse(repaired=len(repaired), subscriptions=repaired)
