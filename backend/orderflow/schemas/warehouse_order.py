"""ORDERFLOW — Warehouse Order schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class WarehouseOrderItemResponse(BaseModel):
    id: UUID
    item_type: str
    item_id: int
    item_name: str | None
    requested_quantity: int
    fulfilled_quantity: int
    notes: str | None

    class Config:
        from_attributes = True


class WarehouseOrderProductResponse(BaseModel):
    product_id: int
    product_name: str | None
    quantity: int
    module_ids: list[int]
    final_assembly_order_id: UUID | None

    class Config:
        from_attributes = True


class WarehouseOrderResponse(BaseModel):
    id: UUID
    order_number: str
    parent_type: str | None
    parent_id: UUID | None
    workstation_id: int
    status: str
    trigger_scenario: str | None
    production_order_id: UUID | None
    notes: str | None
    items: list[WarehouseOrderItemResponse]
    products: list[WarehouseOrderProductResponse]
    created_at: datetime | None
    updated_at: datetime | None

    class Config:
        from_attributes = True
