"""ORDERFLOW — Final Assembly Order schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class FinalAssemblyOrderResponse(BaseModel):
    id: UUID
    order_number: str
    parent_type: str
    parent_id: UUID
    workstation_id: int
    output_product_id: int
    output_product_name: str | None
    output_quantity: int
    status: str
    notes: str | None
    start_time: datetime | None
    completion_time: datetime | None
    submit_time: datetime | None
    created_at: datetime | None

    class Config:
        from_attributes = True
