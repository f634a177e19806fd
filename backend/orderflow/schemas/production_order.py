"""ORDERFLOW — Production, control and workstation order schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProductionOrderItemCreate(BaseModel):
    item_type: str | None = "MODULE"
    item_id: int | None = None
    quantity: int | None = None


class ProductionOrderCreate(BaseModel):
    items: list[ProductionOrderItemCreate] = []
    priority: str | None = None
    due_date: datetime | None = None
    notes: str | None = None
    created_by_workstation_id: int | None = None


class ScheduleRequest(BaseModel):
    schedule_id: str | None = Field(None, description="Link an existing schedule instead of submitting a new one")


class ProductionOrderItemResponse(BaseModel):
    id: UUID
    item_type: str
    item_id: int
    item_name: str | None
    quantity: int
    estimated_time_minutes: int
    workstation_type: str
    target_workstation_id: int

    class Config:
        from_attributes = True


class ProductionOrderResponse(BaseModel):
    id: UUID
    order_number: str
    parent_type: str | None
    parent_id: UUID | None
    source_customer_order_id: UUID | None
    status: str
    priority: str
    trigger_scenario: str | None
    due_date: datetime | None
    schedule_id: str | None
    estimated_duration_minutes: int | None
    expected_completion_time: datetime | None
    actual_completion_time: datetime | None
    created_by_workstation_id: int | None
    notes: str | None
    items: list[ProductionOrderItemResponse]
    created_at: datetime | None

    class Config:
        from_attributes = True


class WorkstationOrderResponse(BaseModel):
    id: UUID
    order_number: str
    control_order_id: UUID
    kind: str
    workstation_id: int
    output_item_type: str
    output_item_id: int
    output_item_name: str | None
    quantity: int
    required_items: list[dict]
    status: str
    priority: str
    supply_order_id: UUID | None
    schedule_task_id: str | None
    halt_reason: str | None
    operator_notes: str | None
    started_at: datetime | None
    completed_at: datetime | None

    class Config:
        from_attributes = True


class ControlOrderResponse(BaseModel):
    id: UUID
    control_order_number: str
    control_type: str
    production_order_id: UUID
    schedule_id: str | None
    status: str
    priority: str
    instructions: str | None
    target_completion_time: datetime | None
    actual_start_time: datetime | None
    actual_completion_time: datetime | None
    workstation_orders: list[WorkstationOrderResponse]

    class Config:
        from_attributes = True


class OperatorNotesRequest(BaseModel):
    notes: str = Field(..., max_length=4000)


class SupplyRequest(BaseModel):
    priority: str | None = None
    requested_by_time: datetime | None = None
    notes: str | None = None
