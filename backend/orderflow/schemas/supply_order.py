"""ORDERFLOW — Supply Order schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class SupplyOrderItemCreate(BaseModel):
    part_id: int | None = None
    quantity: int | None = None


class SupplyOrderCreate(BaseModel):
    requesting_workstation_id: int
    items: list[SupplyOrderItemCreate] = []
    priority: str | None = None
    requested_by_time: datetime | None = None
    notes: str | None = None


class SupplyOrderItemResponse(BaseModel):
    id: UUID
    part_id: int
    part_name: str | None
    quantity_requested: int
    quantity_supplied: int | None
    unit: str

    class Config:
        from_attributes = True


class SupplyOrderResponse(BaseModel):
    id: UUID
    order_number: str
    source_control_order_id: UUID | None
    source_control_order_type: str | None
    workstation_order_id: UUID | None
    requesting_workstation_id: int
    supply_workstation_id: int
    priority: str
    requested_by_time: datetime | None
    status: str
    notes: str | None
    fulfilled_at: datetime | None
    rejected_at: datetime | None
    cancelled_at: datetime | None
    items: list[SupplyOrderItemResponse]

    class Config:
        from_attributes = True
