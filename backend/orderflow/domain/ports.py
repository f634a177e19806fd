"""ORDERFLOW — Contracts of the remote collaborators the orchestration depends on.

Every method may raise CollaboratorFailure on transport errors or timeouts;
orchestration services convert that into the negative business result.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


class InventoryGateway(Protocol):
    async def check_stock(self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None) -> bool: ...

    async def debit(self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None, notes: str | None = None) -> bool: ...

    async def credit(self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None, notes: str | None = None) -> bool: ...

    async def adjust(self, request: "StockAdjustment") -> bool: ...


class BomResolver(Protocol):
    async def explode_product(self, product_id: int, quantity: int) -> dict[int, int]: ...

    async def explode_module(self, module_id: int, quantity: int) -> dict[int, int]: ...

    async def lookup_name(self, item_type: str, item_id: int) -> str: ...

    async def production_workstation(self, module_id: int) -> int | None: ...


class ProductionScheduler(Protocol):
    async def submit(self, production_order: Any) -> "ScheduleReceipt": ...

    async def update_task_status(self, task_id: str, status: str) -> bool: ...

    async def get_scheduled_tasks(self, schedule_id: str) -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class StockAdjustment:
    workstation_id: int
    item_type: str
    item_id: int
    delta: int
    reason: str
    notes: str | None = None


@dataclass(frozen=True)
class ScheduleReceipt:
    schedule_id: str
    estimated_duration_minutes: int | None = None
    expected_completion_time: datetime | None = None


@dataclass
class Gateways:
    """Collaborator bundle handed to orchestration services."""

    inventory: InventoryGateway
    bom: BomResolver
    scheduler: ProductionScheduler


def schedule_task_id(workstation_id: int, order_number: str) -> str:
    """Scheduler task id, derived deterministically from station and order number."""
    return f"workstation-{workstation_id}-{order_number}"
