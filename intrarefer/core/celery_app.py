"""Celery application configuration"""

from celery import Celery
from kombu import Exchange, Queue
from intrarefer.core.config import settings

celery_app = Celery(
    "intrarefer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "intrarefer.tasks.reconciliation_tasks",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    task_acks_late=True,
    worker_prefetch_multiplier=1,

    task_routes={
        "reconcile_subscriptions": {"queue": "payments"},
    },

    # Retry configuration
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    result_expires=3600,  # 1 hour
)

celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("payments", Exchange("payments"), routing_key="payments"),
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "reconcile-subscriptions": {
        "task": "reconcile_subscriptions",
        "schedule": settings.RECONCILE_INTERVAL_SECONDS,
        "options": {"queue": "payments"}
    },
}
