"""ORDERFLOW — Webhook delivery Celery tasks.

``deliver`` does one signed POST and records the outcome on the delivery row;
the Celery task around it retries transport errors and non-2xx replies with
exponential backoff. ``requeue_stale_deliveries`` re-enqueues deliveries that
never left PENDING because their enqueue was lost.
"""
import asyncio
import hashlib
import hmac
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import selectinload
from sqlalchemy.pool import NullPool

from orderflow.config import get_settings
from orderflow.db.base import utcnow
from orderflow.models.webhook import WebhookDelivery
from orderflow.worker import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()

SIGNATURE_HEADER = "X-Orderflow-Signature"
EVENT_HEADER = "X-Orderflow-Event"
DELIVERY_HEADER = "X-Orderflow-Delivery"


def sign(secret: str, body: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


@asynccontextmanager
async def _worker_session() -> AsyncGenerator[AsyncSession, None]:
    # Each task runs in its own event loop, so pooled connections cannot be reused
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    try:
        async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as session:
            yield session
    finally:
        await engine.dispose()


@celery_app.task(bind=True, max_retries=settings.WEBHOOK_MAX_RETRIES)
def deliver_webhook(self, delivery_id: str) -> None:
    """
    Delivers a webhook payload to the configured URL with exponential backoff.
    Retries automatically if the response is not 200-299.
    """
    try:
        asyncio.run(_deliver_webhook_async(delivery_id))
    except (httpx.RequestError, httpx.HTTPStatusError) as exc:
        # 2^retries * 5 seconds (5s, 10s, 20s)
        delay = (2 ** self.request.retries) * 5
        logger.warning("Webhook delivery %s failed, retrying in %ss: %s", delivery_id, delay, exc)
        raise self.retry(exc=exc, countdown=delay)


@celery_app.task
def requeue_stale_deliveries() -> int:
    delivery_ids = asyncio.run(_stale_deliveries_async())
    for delivery_id in delivery_ids:
        deliver_webhook.delay(str(delivery_id))
    if delivery_ids:
        logger.info("Re-enqueued %d stale webhook deliveries", len(delivery_ids))
    return len(delivery_ids)


async def _deliver_webhook_async(delivery_id: str) -> None:
    async with _worker_session() as db, httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS) as client:
        await deliver(db, client, UUID(delivery_id))


async def _stale_deliveries_async() -> list[UUID]:
    async with _worker_session() as db:
        return await stale_delivery_ids(db, settings.WEBHOOK_STALE_AFTER_SECONDS)


async def stale_delivery_ids(db: AsyncSession, older_than_seconds: int) -> list[UUID]:
    """PENDING deliveries never attempted and created more than ``older_than_seconds`` ago."""
    cutoff = utcnow() - timedelta(seconds=older_than_seconds)
    stmt = (
        select(WebhookDelivery.id)
        .where(
            WebhookDelivery.status == "PENDING",
            WebhookDelivery.attempts == 0,
            WebhookDelivery.created_at < cutoff,
        )
        .order_by(WebhookDelivery.created_at)
    )
    return list((await db.execute(stmt)).scalars().all())


async def deliver(db: AsyncSession, client: httpx.AsyncClient, delivery_id: UUID) -> bool:
    """POST one delivery; raises httpx errors so the task can retry. Returns False when skipped."""
    stmt = (
        select(WebhookDelivery)
        .options(selectinload(WebhookDelivery.webhook))
        .where(WebhookDelivery.id == delivery_id)
    )
    delivery = (await db.execute(stmt)).scalar_one_or_none()
    if delivery is None or delivery.webhook is None or not delivery.webhook.is_active:
        logger.info("Skipping webhook delivery %s: missing or inactive subscription", delivery_id)
        return False

    webhook = delivery.webhook
    body = json.dumps(delivery.payload, separators=(",", ":"))
    headers = {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: sign(webhook.secret, body),
        EVENT_HEADER: delivery.event_type,
        DELIVERY_HEADER: str(delivery.id),
    }

    delivery.attempts += 1
    delivery.last_attempt_at = utcnow()
    delivery.status = "PENDING"
    await db.commit()

    try:
        response = await client.post(webhook.url, content=body, headers=headers)
    except httpx.RequestError:
        delivery.status = "FAILED"
        await db.commit()
        raise

    delivery.response_code = response.status_code
    delivery.response_body = response.text[:2000]
    if response.is_success:
        delivery.status = "SUCCESS"
        delivery.delivered_at = utcnow()
        await db.commit()
        return True

    delivery.status = "FAILED"
    await db.commit()
    response.raise_for_status()
    return False
