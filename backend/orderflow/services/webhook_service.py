"""ORDERFLOW — Webhook subscriptions and delivery fan-out."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import NotFound, ValidationFailure
from orderflow.db.base import utcnow
from orderflow.domain.effects import NotifyWebhooks
from orderflow.models.webhook import ANY_EVENT, Webhook, WebhookDelivery

logger = logging.getLogger(__name__)


class WebhookService:

    @staticmethod
    async def subscribe(db: AsyncSession, url: str, secret: str, event_type: str | None = None) -> Webhook:
        errors = []
        if not url or not url.startswith(("http://", "https://")):
            errors.append("url must be an absolute http(s) URL")
        if not secret:
            errors.append("secret is required")
        if errors:
            raise ValidationFailure(errors)
        webhook = Webhook(url=url, secret=secret, event_type=(event_type or ANY_EVENT).upper(), is_active=True)
        db.add(webhook)
        await db.flush()
        return webhook

    @staticmethod
    async def list_webhooks(db: AsyncSession) -> list[Webhook]:
        result = await db.execute(select(Webhook).order_by(Webhook.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, webhook_id: UUID) -> Webhook:
        webhook = await db.get(Webhook, webhook_id)
        if webhook is None:
            raise NotFound("Webhook", webhook_id)
        return webhook

    @staticmethod
    async def delete(db: AsyncSession, webhook_id: UUID) -> None:
        webhook = await WebhookService.get(db, webhook_id)
        await db.delete(webhook)
        await db.flush()

    @staticmethod
    async def list_deliveries(db: AsyncSession, webhook_id: UUID, limit: int = 50) -> list[WebhookDelivery]:
        await WebhookService.get(db, webhook_id)
        stmt = (
            select(WebhookDelivery)
            .where(WebhookDelivery.webhook_id == webhook_id)
            .order_by(WebhookDelivery.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def dispatch(db: AsyncSession, event: NotifyWebhooks) -> list[UUID]:
        """Create one pending delivery per matching subscription; returns delivery ids."""
        result = await db.execute(select(Webhook).where(Webhook.is_active.is_(True)))
        matching = [w for w in result.scalars().all() if w.matches(event.event_key)]
        if not matching:
            return []

        payload = {
            "orderType": event.order_type,
            "orderId": str(event.order_id),
            "eventType": event.event_type,
            "description": event.description,
            "createdAt": utcnow().isoformat(),
        }
        deliveries = [WebhookDelivery(webhook_id=w.id, event_type=event.event_key, payload=payload) for w in matching]
        db.add_all(deliveries)
        await db.flush()
        logger.info("Queued %d webhook deliveries for %s", len(deliveries), event.event_key)
        return [d.id for d in deliveries]


def enqueue_delivery(delivery_id: UUID) -> None:
    """Hand a delivery to the Celery worker; failures are logged only."""
    from orderflow.tasks.webhook_tasks import deliver_webhook

    try:
        deliver_webhook.delay(str(delivery_id))
    except Exception as exc:
        logger.error("Failed to enqueue webhook delivery %s: %s", delivery_id, exc, exc_info=True)
