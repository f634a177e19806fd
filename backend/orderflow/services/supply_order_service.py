"""ORDERFLOW — SupplyOrderService: parts requests to the Parts Supply Warehouse (WS-9)."""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import NotFound, ValidationCollector, ValidationFailure
from orderflow.db.base import utcnow
from orderflow.domain.effects import Effect
from orderflow.domain.ports import Gateways
from orderflow.domain.states import (
    SOURCE_WORKSTATION,
    SUPPLY_ORDER_MACHINE,
    WORKSTATION_ORDER_MACHINE,
)
from orderflow.models.control_order import ControlOrder
from orderflow.models.supply_order import SupplyOrder
from orderflow.services.bom_service import BOMService
from orderflow.services.order_factory import OrderFactory
from orderflow.services.workstation_service import WorkstationOrderService

logger = logging.getLogger(__name__)


class SupplyOrderService:

    @staticmethod
    async def get(db: AsyncSession, order_id: UUID, for_update: bool = False) -> SupplyOrder:
        stmt = select(SupplyOrder).where(SupplyOrder.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFound("SupplyOrder", order_id)
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        supply_workstation_id: int | None = None,
        requesting_workstation_id: int | None = None,
        status: str | None = None,
    ) -> list[SupplyOrder]:
        stmt = select(SupplyOrder).order_by(SupplyOrder.created_at.desc())
        if supply_workstation_id is not None:
            stmt = stmt.where(SupplyOrder.supply_workstation_id == supply_workstation_id)
        if requesting_workstation_id is not None:
            stmt = stmt.where(SupplyOrder.requesting_workstation_id == requesting_workstation_id)
        if status:
            stmt = stmt.where(SupplyOrder.status == status.upper())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        gateways: Gateways,
        requesting_workstation_id: int,
        lines_data: list[dict],
        priority: str | None = None,
        requested_by_time: datetime | None = None,
        notes: str | None = None,
    ) -> tuple[SupplyOrder, list[Effect]]:
        """Manual supply request, not tied to a workstation order."""
        errors = ValidationCollector()
        errors.check(bool(lines_data), "Supply order needs at least one part")
        parts: dict[int, int] = {}
        for idx, line in enumerate(lines_data or [], start=1):
            part_id = line.get("part_id")
            quantity = line.get("quantity")
            errors.check(isinstance(part_id, int) and part_id > 0, f"Item {idx}: part id must be a positive integer")
            errors.check(isinstance(quantity, int) and quantity > 0, f"Item {idx}: quantity must be positive")
            if isinstance(part_id, int) and isinstance(quantity, int) and quantity > 0:
                parts[part_id] = parts.get(part_id, 0) + quantity
        errors.raise_if_any()

        return await OrderFactory.create_supply_order(
            db,
            gateways.bom,
            requesting_workstation_id,
            parts,
            priority=priority,
            requested_by_time=requested_by_time,
            notes=notes,
        )

    @staticmethod
    async def create_for_workstation_order(
        db: AsyncSession,
        gateways: Gateways,
        workstation_order_id: UUID,
        priority: str | None = None,
        requested_by_time: datetime | None = None,
        notes: str | None = None,
    ) -> tuple[SupplyOrder, list[Effect]]:
        """
        Request the parts a workstation order needs. The parts list comes from
        the module's BOM; the workstation order moves to WAITING_FOR_PARTS.
        """
        ws_order = await WorkstationOrderService.get(db, workstation_order_id, for_update=True)
        WORKSTATION_ORDER_MACHINE.next_state(ws_order.status, "wait_for_parts")

        parts, effects = await BOMService.explode_module(
            gateways.bom, ws_order.output_item_id, ws_order.quantity, SOURCE_WORKSTATION, ws_order.id
        )
        if not parts:
            raise ValidationFailure(
                [f"No parts could be resolved for module {ws_order.output_item_id}"]
            ).with_effects(effects)

        control = await db.get(ControlOrder, ws_order.control_order_id)
        supply, fx = await OrderFactory.create_supply_order(
            db,
            gateways.bom,
            ws_order.workstation_id,
            parts,
            priority=priority,
            requested_by_time=requested_by_time,
            notes=notes,
            source_control_order_id=control.id if control else None,
            source_control_order_type=control.control_type if control else None,
            workstation_order_id=ws_order.id,
        )
        effects.extend(fx)

        transition = WORKSTATION_ORDER_MACHINE.apply(
            ws_order, "wait_for_parts", f"Waiting for parts from supply order {supply.order_number}"
        )
        ws_order.supply_order_id = supply.id
        effects.extend(transition.effects)
        await db.flush()
        logger.info("Supply order %s raised for %s", supply.order_number, ws_order.order_number)
        return supply, effects

    @staticmethod
    async def start(db: AsyncSession, order_id: UUID) -> tuple[SupplyOrder, list[Effect]]:
        order = await SupplyOrderService.get(db, order_id, for_update=True)
        transition = SUPPLY_ORDER_MACHINE.apply(order, "start")
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def fulfill(db: AsyncSession, order_id: UUID) -> tuple[SupplyOrder, list[Effect]]:
        """Parts handed over in full; the waiting workstation order may now start."""
        order = await SupplyOrderService.get(db, order_id, for_update=True)
        transition = SUPPLY_ORDER_MACHINE.apply(order, "fulfill")
        for item in order.items:
            item.quantity_supplied = item.quantity_requested
        order.fulfilled_at = utcnow()
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def reject(db: AsyncSession, order_id: UUID, reason: str | None = None) -> tuple[SupplyOrder, list[Effect]]:
        order = await SupplyOrderService.get(db, order_id, for_update=True)
        transition = SUPPLY_ORDER_MACHINE.apply(order, "reject", f"Rejected: {reason}" if reason else None)
        if reason:
            order.append_note(f"Rejected: {reason}")
        order.rejected_at = utcnow()
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def cancel(db: AsyncSession, order_id: UUID, reason: str | None = None) -> tuple[SupplyOrder, list[Effect]]:
        order = await SupplyOrderService.get(db, order_id, for_update=True)
        transition = SUPPLY_ORDER_MACHINE.apply(order, "cancel", f"Cancelled: {reason}" if reason else None)
        if reason:
            order.append_note(f"Cancelled: {reason}")
        order.cancelled_at = utcnow()
        await db.flush()
        return order, transition.effects
