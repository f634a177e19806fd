"""ORDERFLOW — Shop-floor services: control orders and the workstation orders under them."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import CollaboratorFailure, InvalidStateTransition, NotFound
from orderflow.db.base import utcnow
from orderflow.domain.effects import Effect, SyncScheduleTask, audit
from orderflow.domain.ports import Gateways
from orderflow.domain.states import (
    SOURCE_WORKSTATION,
    WORKSTATION_ORDER_MACHINE,
    SupplyOrderStatus,
    WorkstationOrderStatus,
)
from orderflow.domain.workstations import Workstation
from orderflow.models.control_order import ControlOrder, WorkstationOrder
from orderflow.models.supply_order import SupplyOrder
from orderflow.services.audit_service import EVENT_NOTES_UPDATED, EVENT_STOCK_CREDITED
from orderflow.services.cascade import CascadePropagator
from orderflow.services.stock_service import StockService

logger = logging.getLogger(__name__)

_ACTIVE = (
    WorkstationOrderStatus.PENDING.value,
    WorkstationOrderStatus.WAITING_FOR_PARTS.value,
    WorkstationOrderStatus.IN_PROGRESS.value,
    WorkstationOrderStatus.HALTED.value,
)


class ControlOrderService:

    @staticmethod
    async def get(db: AsyncSession, control_order_id: UUID) -> ControlOrder:
        control = await db.get(ControlOrder, control_order_id)
        if control is None:
            raise NotFound("ControlOrder", control_order_id)
        return control

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        control_type: str | None = None,
        status: str | None = None,
        production_order_id: UUID | None = None,
    ) -> list[ControlOrder]:
        stmt = select(ControlOrder).order_by(ControlOrder.created_at.desc())
        if control_type:
            stmt = stmt.where(ControlOrder.control_type == control_type.upper())
        if status:
            stmt = stmt.where(ControlOrder.status == status.upper())
        if production_order_id is not None:
            stmt = stmt.where(ControlOrder.production_order_id == production_order_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def progress(db: AsyncSession, control_order_id: UUID) -> dict:
        control = await ControlOrderService.get(db, control_order_id)
        total = len(control.workstation_orders)
        completed = sum(1 for o in control.workstation_orders if o.status == WorkstationOrderStatus.COMPLETED.value)
        return {
            "control_order_id": control.id,
            "status": control.status,
            "completed": completed,
            "total": total,
            "percentage": round(100.0 * completed / total, 1) if total else 0.0,
        }


class WorkstationOrderService:

    @staticmethod
    async def get(db: AsyncSession, order_id: UUID, for_update: bool = False) -> WorkstationOrder:
        stmt = select(WorkstationOrder).where(WorkstationOrder.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFound("WorkstationOrder", order_id)
        return order

    @staticmethod
    async def list_for_workstation(
        db: AsyncSession, workstation_id: int, active_only: bool = False, status: str | None = None
    ) -> list[WorkstationOrder]:
        stmt = (
            select(WorkstationOrder)
            .where(WorkstationOrder.workstation_id == workstation_id)
            .order_by(WorkstationOrder.created_at)
        )
        if active_only:
            stmt = stmt.where(WorkstationOrder.status.in_(_ACTIVE))
        if status:
            stmt = stmt.where(WorkstationOrder.status == status.upper())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def start(db: AsyncSession, order_id: UUID) -> tuple[WorkstationOrder, list[Effect]]:
        """PENDING / WAITING_FOR_PARTS -> IN_PROGRESS; waiting orders need their supply order fulfilled."""
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        if order.status == WorkstationOrderStatus.WAITING_FOR_PARTS.value and order.supply_order_id:
            supply = await db.get(SupplyOrder, order.supply_order_id)
            if supply is not None and supply.status != SupplyOrderStatus.FULFILLED.value:
                raise InvalidStateTransition(
                    entity="SupplyOrder",
                    current=supply.status,
                    operation=f"start workstation order {order.order_number}",
                    allowed_from=[SupplyOrderStatus.FULFILLED.value],
                )
        transition = WORKSTATION_ORDER_MACHINE.apply(order, "start")
        order.started_at = utcnow()
        effects = [*transition.effects, *await CascadePropagator.on_workstation_order_started(db, order)]
        if order.schedule_task_id:
            effects.append(SyncScheduleTask(order.schedule_task_id, WorkstationOrderStatus.IN_PROGRESS.value))
        await db.flush()
        return order, effects

    @staticmethod
    async def complete(db: AsyncSession, gateways: Gateways, order_id: UUID) -> tuple[WorkstationOrder, list[Effect]]:
        """IN_PROGRESS -> COMPLETED; credits the produced module to the Modules Supermarket."""
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        WORKSTATION_ORDER_MACHINE.next_state(order.status, "complete")

        credited, effects = await StockService.credit(
            gateways.inventory,
            Workstation.MODULES_SUPERMARKET.value,
            order.output_item_type,
            order.output_item_id,
            order.quantity,
            SOURCE_WORKSTATION,
            order.id,
            notes=f"Produced by {order.order_number} at WS-{order.workstation_id}",
        )
        if not credited:
            raise CollaboratorFailure(
                "inventory", "credit", f"Modules Supermarket credit for {order.order_number} failed"
            ).with_effects(effects)
        effects.append(
            audit(
                SOURCE_WORKSTATION,
                order.id,
                EVENT_STOCK_CREDITED,
                f"{order.output_item_type} {order.output_item_id} x{order.quantity} credited to WS-{Workstation.MODULES_SUPERMARKET.value}",
            )
        )

        transition = WORKSTATION_ORDER_MACHINE.apply(order, "complete")
        order.completed_at = utcnow()
        effects.extend(transition.effects)
        if order.schedule_task_id:
            effects.append(SyncScheduleTask(order.schedule_task_id, WorkstationOrderStatus.COMPLETED.value))
        effects.extend(await CascadePropagator.on_workstation_order_completed(db, gateways, order))
        await db.flush()
        return order, effects

    @staticmethod
    async def halt(db: AsyncSession, order_id: UUID, reason: str | None = None) -> tuple[WorkstationOrder, list[Effect]]:
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        transition = WORKSTATION_ORDER_MACHINE.apply(order, "halt", f"Halted: {reason}" if reason else None)
        order.halt_reason = reason
        effects = list(transition.effects)
        if order.schedule_task_id:
            effects.append(SyncScheduleTask(order.schedule_task_id, WorkstationOrderStatus.HALTED.value))
        await db.flush()
        return order, effects

    @staticmethod
    async def resume(db: AsyncSession, order_id: UUID) -> tuple[WorkstationOrder, list[Effect]]:
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        transition = WORKSTATION_ORDER_MACHINE.apply(order, "resume")
        order.halt_reason = None
        effects = list(transition.effects)
        if order.schedule_task_id:
            effects.append(SyncScheduleTask(order.schedule_task_id, WorkstationOrderStatus.IN_PROGRESS.value))
        await db.flush()
        return order, effects

    @staticmethod
    async def mark_waiting_for_parts(
        db: AsyncSession, order_id: UUID, supply_order_id: UUID
    ) -> tuple[WorkstationOrder, list[Effect]]:
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        if await db.get(SupplyOrder, supply_order_id) is None:
            raise NotFound("SupplyOrder", supply_order_id)
        transition = WORKSTATION_ORDER_MACHINE.apply(
            order, "wait_for_parts", f"Waiting for parts from supply order {supply_order_id}"
        )
        order.supply_order_id = supply_order_id
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def cancel(
        db: AsyncSession, gateways: Gateways, order_id: UUID, reason: str | None = None
    ) -> tuple[WorkstationOrder, list[Effect]]:
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        transition = WORKSTATION_ORDER_MACHINE.apply(order, "cancel", f"Cancelled: {reason}" if reason else None)
        await db.flush()
        effects = await CascadePropagator.on_workstation_order_cancelled(db, gateways, order)
        await db.flush()
        return order, [*transition.effects, *effects]

    @staticmethod
    async def update_operator_notes(db: AsyncSession, order_id: UUID, notes: str) -> tuple[WorkstationOrder, list[Effect]]:
        """Free-text notes; the only field operators may edit directly."""
        order = await WorkstationOrderService.get(db, order_id, for_update=True)
        order.operator_notes = notes
        await db.flush()
        return order, [audit(SOURCE_WORKSTATION, order.id, EVENT_NOTES_UPDATED, "Operator notes updated")]
