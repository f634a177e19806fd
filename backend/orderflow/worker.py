"""ORDERFLOW — Celery app: webhook delivery queue and the stale-delivery sweep."""
from celery import Celery

from orderflow.config import get_settings

settings = get_settings()

WEBHOOK_QUEUE = "webhooks"

celery_app = Celery(
    "orderflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.REDIS_URL,
    include=["orderflow.tasks.webhook_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=3600,
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # A delivery attempt never outlives its HTTP timeout by much
    task_soft_time_limit=int(settings.WEBHOOK_TIMEOUT_SECONDS) + 20,
    task_default_queue=WEBHOOK_QUEUE,
    task_routes={"orderflow.tasks.webhook_tasks.*": {"queue": WEBHOOK_QUEUE}},
)

# Deliveries whose enqueue was lost (broker down at commit time) are picked up here
celery_app.conf.beat_schedule = {
    "requeue-stale-webhook-deliveries": {
        "task": "orderflow.tasks.webhook_tasks.requeue_stale_deliveries",
        "schedule": float(settings.WEBHOOK_REQUEUE_INTERVAL_SECONDS),
    },
}
