"""ORDERFLOW — ProductionOrderService: confirm, schedule and dispatch module production."""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import CollaboratorFailure, NotFound, ValidationCollector
from orderflow.domain.effects import Effect, audit
from orderflow.domain.parents import NoParent
from orderflow.domain.ports import Gateways
from orderflow.domain.states import (
    PRODUCTION_ORDER_MACHINE,
    SOURCE_PRODUCTION,
    ControlOrderStatus,
)
from orderflow.domain.workstations import ItemType
from orderflow.models.control_order import ControlOrder
from orderflow.models.production_order import ProductionOrder
from orderflow.services.audit_service import EVENT_COLLABORATOR_FAILURE
from orderflow.services.bom_service import ComponentDemand
from orderflow.services.order_factory import OrderFactory

logger = logging.getLogger(__name__)


class ProductionOrderService:

    @staticmethod
    async def get(db: AsyncSession, order_id: UUID, for_update: bool = False) -> ProductionOrder:
        stmt = select(ProductionOrder).where(ProductionOrder.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFound("ProductionOrder", order_id)
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, status: str | None = None) -> list[ProductionOrder]:
        stmt = select(ProductionOrder).order_by(ProductionOrder.created_at.desc())
        if status:
            stmt = stmt.where(ProductionOrder.status == status.upper())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_standalone(
        db: AsyncSession,
        gateways: Gateways,
        lines_data: list[dict],
        priority: str | None = None,
        due_date: datetime | None = None,
        notes: str | None = None,
        created_by_workstation_id: int | None = None,
    ) -> tuple[ProductionOrder, list[Effect]]:
        """Production order raised by hand (e.g. replenishing the Modules Supermarket)."""
        errors = ValidationCollector()
        errors.check(bool(lines_data), "Production order needs at least one module")
        totals: dict[int, int] = {}
        for idx, line in enumerate(lines_data or [], start=1):
            item_type = str(line.get("item_type") or ItemType.MODULE.value).upper()
            item_id = line.get("item_id")
            quantity = line.get("quantity")
            errors.check(item_type == ItemType.MODULE.value, f"Item {idx}: only modules can be produced")
            errors.check(isinstance(item_id, int) and item_id > 0, f"Item {idx}: item id must be a positive integer")
            errors.check(isinstance(quantity, int) and quantity > 0, f"Item {idx}: quantity must be positive")
            if isinstance(item_id, int) and isinstance(quantity, int) and quantity > 0:
                totals[item_id] = totals.get(item_id, 0) + quantity
        errors.raise_if_any()

        demands = [ComponentDemand(ItemType.MODULE.value, item_id, qty) for item_id, qty in totals.items()]
        return await OrderFactory.create_production_order(
            db,
            gateways.bom,
            NoParent(),
            demands,
            priority=priority,
            due_date=due_date,
            notes=notes,
            created_by_workstation_id=created_by_workstation_id,
        )

    @staticmethod
    async def confirm(db: AsyncSession, order_id: UUID) -> tuple[ProductionOrder, list[Effect]]:
        order = await ProductionOrderService.get(db, order_id, for_update=True)
        transition = PRODUCTION_ORDER_MACHINE.apply(order, "confirm")
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def schedule(
        db: AsyncSession, gateways: Gateways, order_id: UUID, schedule_id: str | None = None
    ) -> tuple[ProductionOrder, list[Effect]]:
        """
        CONFIRMED -> SCHEDULED. Submits to the scheduler unless an explicit
        schedule id is given; a scheduler outage leaves the order unlinked.
        """
        order = await ProductionOrderService.get(db, order_id, for_update=True)
        PRODUCTION_ORDER_MACHINE.next_state(order.status, "schedule")

        effects: list[Effect] = []
        if schedule_id:
            order.schedule_id = schedule_id
        else:
            try:
                receipt = await gateways.scheduler.submit(order)
            except CollaboratorFailure as exc:
                logger.warning("Scheduling %s failed, order left unlinked: %s", order.order_number, exc)
                effects.append(audit(SOURCE_PRODUCTION, order.id, EVENT_COLLABORATOR_FAILURE, str(exc)))
            else:
                order.schedule_id = receipt.schedule_id
                order.estimated_duration_minutes = receipt.estimated_duration_minutes
                order.expected_completion_time = receipt.expected_completion_time

        message = (
            f"Scheduled as {order.schedule_id}" if order.schedule_id else "Scheduled without a linked schedule"
        )
        transition = PRODUCTION_ORDER_MACHINE.apply(order, "schedule", message)
        await db.flush()
        return order, [*effects, *transition.effects]

    @staticmethod
    async def dispatch(db: AsyncSession, gateways: Gateways, order_id: UUID) -> tuple[list[ControlOrder], list[Effect]]:
        """SCHEDULED -> DISPATCHED, creating the control and workstation orders."""
        order = await ProductionOrderService.get(db, order_id, for_update=True)
        transition = PRODUCTION_ORDER_MACHINE.apply(order, "dispatch")
        controls, effects = await OrderFactory.create_control_orders(db, gateways.bom, order)
        await db.flush()
        logger.info("Dispatched %s into %d control orders", order.order_number, len(controls))
        return controls, [*transition.effects, *effects]

    @staticmethod
    async def cancel(db: AsyncSession, order_id: UUID, reason: str | None = None) -> tuple[ProductionOrder, list[Effect]]:
        order = await ProductionOrderService.get(db, order_id, for_update=True)
        transition = PRODUCTION_ORDER_MACHINE.apply(
            order, "cancel", f"Production order cancelled: {reason}" if reason else None
        )
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def control_orders(db: AsyncSession, order_id: UUID) -> list[ControlOrder]:
        result = await db.execute(
            select(ControlOrder)
            .where(ControlOrder.production_order_id == order_id)
            .order_by(ControlOrder.control_order_number)
        )
        return list(result.scalars().all())

    @staticmethod
    async def progress(db: AsyncSession, order_id: UUID) -> dict:
        order = await ProductionOrderService.get(db, order_id)
        controls = await ProductionOrderService.control_orders(db, order.id)
        completed = sum(1 for c in controls if c.status == ControlOrderStatus.COMPLETED.value)
        total = len(controls)
        return {
            "production_order_id": order.id,
            "status": order.status,
            "completed": completed,
            "total": total,
            "percentage": round(100.0 * completed / total, 1) if total else 0.0,
        }
