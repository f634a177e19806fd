"""ORDERFLOW — Audit, webhook and system configuration schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AuditEventResponse(BaseModel):
    id: UUID
    source_type: str
    order_id: UUID
    event_type: str
    message: str
    created_at: datetime

    class Config:
        from_attributes = True


class WebhookCreate(BaseModel):
    url: str = Field(..., max_length=2048)
    secret: str = Field(..., max_length=255)
    event_type: str | None = Field(None, description="<ORDER_TYPE>.<EVENT_TYPE>, or ANY when omitted")


class WebhookResponse(BaseModel):
    id: UUID
    url: str
    event_type: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class WebhookDeliveryResponse(BaseModel):
    id: UUID
    webhook_id: UUID
    event_type: str
    payload: dict
    status: str
    response_code: int | None
    attempts: int
    last_attempt_at: datetime | None
    delivered_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class ConfigUpdate(BaseModel):
    value: str


class ConfigResponse(BaseModel):
    key: str
    value: str
    value_type: str
    description: str | None
    editable: bool
    updated_at: datetime | None

    class Config:
        from_attributes = True
