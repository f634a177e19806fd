"""ORDERFLOW — Customer Order schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CustomerOrderItemCreate(BaseModel):
    # Loose types: the service reports every violation at once.
    item_type: str | None = None
    item_id: int | None = None
    quantity: int | None = None
    item_name: str | None = Field(None, max_length=255)
    notes: str | None = None


class CustomerOrderCreate(BaseModel):
    workstation_id: int = Field(7, description="Workstation the order is raised at (Plant Warehouse by default)")
    items: list[CustomerOrderItemCreate] = []
    notes: str | None = None


class CustomerOrderItemResponse(BaseModel):
    id: UUID
    item_type: str
    item_id: int
    item_name: str | None
    quantity: int
    fulfilled_quantity: int
    remaining_quantity: int
    notes: str | None

    class Config:
        from_attributes = True


class CustomerOrderResponse(BaseModel):
    id: UUID
    order_number: str
    workstation_id: int
    status: str
    trigger_scenario: str | None
    notes: str | None
    total_quantity: int
    items: list[CustomerOrderItemResponse]
    created_at: datetime | None
    updated_at: datetime | None

    class Config:
        from_attributes = True


class FulfillmentResponse(BaseModel):
    order: CustomerOrderResponse
    scenario: str
    scenario_number: int
    warehouse_order_id: UUID | None = None
    production_order_id: UUID | None = None


class ScenarioResponse(BaseModel):
    order_id: UUID
    trigger_scenario: str | None


class CanCompleteResponse(BaseModel):
    order_id: UUID
    can_complete: bool
