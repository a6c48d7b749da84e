"""Subscription reconciliation background tasks"""

from celery.utils.log import get_task_logger
from sqlalchemy.exc import OperationalError
import asyncio

from intrarefer.core.celery_app import celery_app
from intrarefer.core.database import get_db_context, engine
from intrarefer.services.reconciliation import reconcile_subscriptions
from intrarefer.utils.helpers import utc_now

logger = get_task_logger(__name__)

async def _reconcile() -> list:
    try:
        async with get_db_context() as db:
            return await reconcile_subscriptions(db, utc_now())
    finally:
        # Pooled connections are bound to this task's event loop
        await engine.dispose()

@celery_app.task(
    name="reconcile_subscriptions",
    autoretry_for=(OperationalError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3}
)
def reconcile_subscriptions_task():
    """Apply paid, unexpired payments that never reached their user"""
    try:
        repaired = asyncio.run(_reconcile())
    except Exception as e:
        logger.error(f"Error reconciling subscriptions: {str(e)}")
        raise

    if repaired:
        logger.info(f"Reconciled {len(repaired)} subscription(s)")
    return {
        "success": True,
        "repaired": [
            {"payment_id": str(item["payment_id"]), "user_id": str(item["user_id"])}
            for item in repaired
        ]
    }
