"""ORDERFLOW — FinalAssemblyService: product assembly at WS-6, submitted to the Plant Warehouse."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import CollaboratorFailure, NotFound
from orderflow.db.base import utcnow
from orderflow.domain.effects import Effect, audit
from orderflow.domain.parents import ParentType
from orderflow.domain.ports import Gateways
from orderflow.domain.states import FINAL_ASSEMBLY_MACHINE, SOURCE_FINAL_ASSEMBLY
from orderflow.domain.workstations import ItemType, Workstation
from orderflow.models.final_assembly import FinalAssemblyOrder
from orderflow.services.audit_service import EVENT_STOCK_CREDITED
from orderflow.services.cascade import CascadePropagator
from orderflow.services.stock_service import StockService

logger = logging.getLogger(__name__)


class FinalAssemblyService:

    @staticmethod
    async def get(db: AsyncSession, order_id: UUID, for_update: bool = False) -> FinalAssemblyOrder:
        stmt = select(FinalAssemblyOrder).where(FinalAssemblyOrder.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFound("FinalAssemblyOrder", order_id)
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, status: str | None = None) -> list[FinalAssemblyOrder]:
        stmt = select(FinalAssemblyOrder).order_by(FinalAssemblyOrder.created_at.desc())
        if status:
            stmt = stmt.where(FinalAssemblyOrder.status == status.upper())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_parent(db: AsyncSession, parent_type: str, parent_id: UUID) -> list[FinalAssemblyOrder]:
        stmt = (
            select(FinalAssemblyOrder)
            .where(
                FinalAssemblyOrder.parent_type == ParentType(parent_type.upper()).value,
                FinalAssemblyOrder.parent_id == parent_id,
            )
            .order_by(FinalAssemblyOrder.created_at)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def confirm(db: AsyncSession, order_id: UUID) -> tuple[FinalAssemblyOrder, list[Effect]]:
        order = await FinalAssemblyService.get(db, order_id, for_update=True)
        transition = FINAL_ASSEMBLY_MACHINE.apply(order, "confirm")
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def start(db: AsyncSession, order_id: UUID) -> tuple[FinalAssemblyOrder, list[Effect]]:
        order = await FinalAssemblyService.get(db, order_id, for_update=True)
        transition = FINAL_ASSEMBLY_MACHINE.apply(order, "start")
        order.start_time = utcnow()
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def complete(db: AsyncSession, order_id: UUID) -> tuple[FinalAssemblyOrder, list[Effect]]:
        order = await FinalAssemblyService.get(db, order_id, for_update=True)
        transition = FINAL_ASSEMBLY_MACHINE.apply(order, "complete")
        order.completion_time = utcnow()
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def submit(db: AsyncSession, gateways: Gateways, order_id: UUID) -> tuple[FinalAssemblyOrder, list[Effect]]:
        """
        COMPLETED -> SUBMITTED. Credits the finished products to the Plant
        Warehouse; the last submission re-opens the customer order for
        direct fulfillment.
        """
        order = await FinalAssemblyService.get(db, order_id, for_update=True)
        FINAL_ASSEMBLY_MACHINE.next_state(order.status, "submit")

        plant = Workstation.PLANT_WAREHOUSE.value
        credited, effects = await StockService.credit(
            gateways.inventory,
            plant,
            ItemType.PRODUCT.value,
            order.output_product_id,
            order.output_quantity,
            SOURCE_FINAL_ASSEMBLY,
            order.id,
            notes=f"Final assembly order {order.order_number}",
        )
        if not credited:
            raise CollaboratorFailure(
                "inventory", "credit", f"Plant Warehouse credit for {order.order_number} failed"
            ).with_effects(effects)
        effects.append(
            audit(
                SOURCE_FINAL_ASSEMBLY,
                order.id,
                EVENT_STOCK_CREDITED,
                f"Product {order.output_product_id} x{order.output_quantity} credited to WS-{plant}",
            )
        )

        transition = FINAL_ASSEMBLY_MACHINE.apply(order, "submit")
        order.submit_time = utcnow()
        effects.extend(transition.effects)
        effects.extend(await CascadePropagator.on_final_assembly_submitted(db, order))
        await db.flush()
        logger.info("Final assembly order %s submitted", order.order_number)
        return order, effects
