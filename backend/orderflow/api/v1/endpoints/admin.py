"""ORDERFLOW — Audit trail, webhook subscriptions and system configuration."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession
from orderflow.schemas.admin import (
    AuditEventResponse,
    ConfigResponse,
    ConfigUpdate,
    WebhookCreate,
    WebhookDeliveryResponse,
    WebhookResponse,
)
from orderflow.schemas.common import ApiResponse, Meta
from orderflow.services.audit_service import MAX_RECENT, AuditService
from orderflow.services.system_config_service import SystemConfigService
from orderflow.services.webhook_service import WebhookService

audit_router = APIRouter()
webhooks_router = APIRouter()
config_router = APIRouter()


# ── Audit ────────────────────────────────────────────────────────────────────

@audit_router.get("", response_model=ApiResponse[list[AuditEventResponse]])
async def list_audit_events(
    db: DbSession,
    source_type: str = Query(..., alias="sourceType"),
    order_id: UUID = Query(..., alias="orderId"),
):
    """Events of one order, newest first."""
    events = await AuditService.find(db, source_type.upper(), order_id)
    return ApiResponse(data=[AuditEventResponse.model_validate(e) for e in events])


@audit_router.get("/recent", response_model=ApiResponse[list[AuditEventResponse]])
async def list_recent_audit_events(db: DbSession, limit: int = Query(50, ge=1, le=MAX_RECENT)):
    events = await AuditService.find_recent(db, limit)
    return ApiResponse(
        data=[AuditEventResponse.model_validate(e) for e in events],
        meta=Meta(page=1, page_size=limit, total_count=len(events)),
    )


# ── Webhooks ─────────────────────────────────────────────────────────────────

@webhooks_router.get("", response_model=ApiResponse[list[WebhookResponse]])
async def list_webhooks(db: DbSession):
    webhooks = await WebhookService.list_webhooks(db)
    return ApiResponse(data=[WebhookResponse.model_validate(w) for w in webhooks])


@webhooks_router.post("", response_model=ApiResponse[WebhookResponse], status_code=201)
async def create_webhook(body: WebhookCreate, db: DbSession):
    webhook = await WebhookService.subscribe(db, body.url, body.secret, body.event_type)
    await db.commit()
    return ApiResponse(data=WebhookResponse.model_validate(webhook))


@webhooks_router.get("/{webhook_id}", response_model=ApiResponse[WebhookResponse])
async def get_webhook(webhook_id: UUID, db: DbSession):
    return ApiResponse(data=WebhookResponse.model_validate(await WebhookService.get(db, webhook_id)))


@webhooks_router.delete("/{webhook_id}", response_model=ApiResponse[dict])
async def delete_webhook(webhook_id: UUID, db: DbSession):
    await WebhookService.delete(db, webhook_id)
    await db.commit()
    return ApiResponse(data={"success": True})


@webhooks_router.get("/{webhook_id}/deliveries", response_model=ApiResponse[list[WebhookDeliveryResponse]])
async def list_webhook_deliveries(webhook_id: UUID, db: DbSession, limit: int = Query(50, ge=1, le=100)):
    deliveries = await WebhookService.list_deliveries(db, webhook_id, limit)
    return ApiResponse(data=[WebhookDeliveryResponse.model_validate(d) for d in deliveries])


# ── System configuration ─────────────────────────────────────────────────────

@config_router.get("", response_model=ApiResponse[list[ConfigResponse]])
async def list_configuration(db: DbSession):
    configs = await SystemConfigService.list_all(db)
    return ApiResponse(data=[ConfigResponse.model_validate(c) for c in configs])


@config_router.get("/{key}", response_model=ApiResponse[ConfigResponse])
async def get_configuration(key: str, db: DbSession):
    return ApiResponse(data=ConfigResponse.model_validate(await SystemConfigService.get(db, key.upper())))


@config_router.put("/{key}", response_model=ApiResponse[ConfigResponse])
async def update_configuration(key: str, body: ConfigUpdate, db: DbSession):
    config = await SystemConfigService.set_value(db, key.upper(), body.value)
    await db.commit()
    return ApiResponse(data=ConfigResponse.model_validate(config))
