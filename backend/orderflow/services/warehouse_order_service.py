"""ORDERFLOW — WarehouseOrderService: Modules Supermarket requests."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import NotFound, OrderflowError
from orderflow.domain.effects import Effect, audit
from orderflow.domain.parents import ParentType, WarehouseOrderParent
from orderflow.domain.ports import Gateways
from orderflow.domain.states import (
    SOURCE_WAREHOUSE,
    WAREHOUSE_ORDER_MACHINE,
    WarehouseOrderStatus,
    WarehouseTriggerScenario,
)
from orderflow.domain.workstations import ItemType
from orderflow.models.final_assembly import FinalAssemblyOrder
from orderflow.models.production_order import ProductionOrder
from orderflow.models.warehouse_order import WarehouseOrder, WarehouseOrderItem
from orderflow.services.audit_service import (
    EVENT_FULFILLMENT_STARTED,
    EVENT_SCENARIO_SELECTED,
    EVENT_STOCK_DEBITED,
)
from orderflow.services.bom_service import ComponentDemand
from orderflow.services.cascade import CascadePropagator
from orderflow.services.order_factory import OrderFactory
from orderflow.services.stock_service import StockService

logger = logging.getLogger(__name__)


class WarehouseOrderService:

    @staticmethod
    async def get(db: AsyncSession, order_id: UUID, for_update: bool = False) -> WarehouseOrder:
        stmt = select(WarehouseOrder).where(WarehouseOrder.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFound("WarehouseOrder", order_id)
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession, status: str | None = None, workstation_id: int | None = None
    ) -> list[WarehouseOrder]:
        stmt = select(WarehouseOrder).order_by(WarehouseOrder.created_at.desc())
        if status:
            stmt = stmt.where(WarehouseOrder.status == status.upper())
        if workstation_id is not None:
            stmt = stmt.where(WarehouseOrder.workstation_id == workstation_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_customer_order(db: AsyncSession, customer_order_id: UUID) -> list[WarehouseOrder]:
        stmt = (
            select(WarehouseOrder)
            .where(
                WarehouseOrder.parent_type == ParentType.CUSTOMER_ORDER.value,
                WarehouseOrder.parent_id == customer_order_id,
            )
            .order_by(WarehouseOrder.created_at)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def confirm(db: AsyncSession, gateways: Gateways, order_id: UUID) -> tuple[WarehouseOrder, list[Effect]]:
        """PENDING -> CONFIRMED; fixes the authoritative trigger scenario from live module stock."""
        order = await WarehouseOrderService.get(db, order_id, for_update=True)
        transition = WAREHOUSE_ORDER_MACHINE.apply(order, "confirm")
        flags, effects = await StockService.availability(
            gateways.inventory,
            order.workstation_id,
            [(i.item_type, i.item_id, i.remaining_quantity) for i in order.items],
            SOURCE_WAREHOUSE,
            order.id,
        )
        scenario = (
            WarehouseTriggerScenario.DIRECT_FULFILLMENT
            if flags and all(flags)
            else WarehouseTriggerScenario.PRODUCTION_REQUIRED
        )
        order.trigger_scenario = scenario.value
        await db.flush()
        logger.info("Warehouse order %s confirmed - %s", order.order_number, scenario.value)
        return order, [
            *transition.effects,
            *effects,
            audit(SOURCE_WAREHOUSE, order.id, EVENT_SCENARIO_SELECTED, f"Warehouse order confirmed - Scenario: {scenario.value}"),
        ]

    @staticmethod
    async def fulfill(db: AsyncSession, gateways: Gateways, order_id: UUID) -> tuple[WarehouseOrder, list[Effect]]:
        """
        Debit available modules at the Modules Supermarket, release one final
        assembly order per product whose module lines are now all fulfilled, and
        request production for the shortfall. Final status: FULFILLED,
        PROCESSING or PENDING_PRODUCTION.
        """
        order = await WarehouseOrderService.get(db, order_id, for_update=True)
        WAREHOUSE_ORDER_MACHINE.require(
            order.status, "fulfill", [WarehouseOrderStatus.CONFIRMED, WarehouseOrderStatus.MODULES_READY]
        )
        effects: list[Effect] = [
            audit(SOURCE_WAREHOUSE, order.id, EVENT_FULFILLMENT_STARTED, f"Warehouse order fulfillment started: {order.order_number}")
        ]

        open_items = [i for i in order.items if i.remaining_quantity > 0]
        flags, fx = await StockService.availability(
            gateways.inventory,
            order.workstation_id,
            [(i.item_type, i.item_id, i.remaining_quantity) for i in open_items],
            SOURCE_WAREHOUSE,
            order.id,
        )
        effects.extend(fx)

        fulfilled_now: list[tuple[WarehouseOrderItem, int]] = []
        shortfall: list[WarehouseOrderItem] = []
        for item, ok in zip(open_items, flags):
            if not ok:
                shortfall.append(item)
                continue
            qty = item.remaining_quantity
            debited, fx = await StockService.debit(
                gateways.inventory, order.workstation_id, item.item_type, item.item_id, qty,
                SOURCE_WAREHOUSE, order.id, notes=f"Warehouse order {order.order_number}",
            )
            effects.extend(fx)
            if not debited:
                shortfall.append(item)
                continue
            item.fulfilled_quantity = (item.fulfilled_quantity or 0) + qty
            fulfilled_now.append((item, qty))
            effects.append(audit(SOURCE_WAREHOUSE, order.id, EVENT_STOCK_DEBITED, f"Module {item.item_id} x{qty} debited from WS-{order.workstation_id}"))

        try:
            for product in order.products:
                if product.final_assembly_order_id is not None or not order.modules_ready_for(product):
                    continue
                final_order, fx = await OrderFactory.create_final_assembly_order(
                    db, gateways.bom, WarehouseOrderParent(order.id), product.product_id, product.quantity, order.order_number
                )
                product.final_assembly_order_id = final_order.id
                effects.extend(fx)

            production_demand = [
                ComponentDemand(i.item_type, i.item_id, i.remaining_quantity)
                for i in shortfall
                if i.item_type == ItemType.MODULE.value
            ]
            if len(production_demand) < len(shortfall):
                logger.warning("Warehouse order %s has non-module shortfall that production cannot cover", order.order_number)
            if production_demand:
                production_order, fx = await OrderFactory.create_production_order(
                    db,
                    gateways.bom,
                    WarehouseOrderParent(order.id),
                    production_demand,
                    source_customer_order_id=order.source_customer_order_id,
                    trigger_scenario=WarehouseTriggerScenario.PRODUCTION_REQUIRED.value,
                    notes=f"Shortfall of warehouse order {order.order_number}",
                )
                order.production_order_id = production_order.id
                effects.extend(fx)
        except OrderflowError as exc:
            # Debits already happened remotely; give them back before failing.
            for item, qty in fulfilled_now:
                _, fx = await StockService.credit(
                    gateways.inventory, order.workstation_id, item.item_type, item.item_id, qty,
                    SOURCE_WAREHOUSE, order.id, notes=f"Reversal for warehouse order {order.order_number}",
                )
                effects.extend(fx)
            raise exc.with_effects([*effects, *exc.effects])

        if order.fully_fulfilled:
            operation = "fulfill_all"
        elif fulfilled_now:
            operation = "fulfill_partial"
        else:
            operation = "await_production"
        transition = WAREHOUSE_ORDER_MACHINE.apply(
            order,
            operation,
            f"{len(fulfilled_now)} lines fulfilled, {len(shortfall)} lines short",
        )
        effects.extend(transition.effects)
        if order.status == WarehouseOrderStatus.FULFILLED.value:
            effects.extend(await CascadePropagator.on_warehouse_order_closed(db, order))
        await db.flush()
        logger.info("Warehouse order %s -> %s", order.order_number, order.status)
        return order, effects

    @staticmethod
    async def mark_modules_ready(db: AsyncSession, order_id: UUID) -> tuple[WarehouseOrder, list[Effect]]:
        order = await WarehouseOrderService.get(db, order_id, for_update=True)
        transition = WAREHOUSE_ORDER_MACHINE.apply(order, "modules_ready", "Production completed, modules ready")
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def cancel(db: AsyncSession, order_id: UUID, reason: str | None = None) -> tuple[WarehouseOrder, list[Effect]]:
        order = await WarehouseOrderService.get(db, order_id, for_update=True)
        transition = WAREHOUSE_ORDER_MACHINE.apply(
            order, "cancel", f"Warehouse order cancelled: {reason}" if reason else "Warehouse order cancelled"
        )
        await db.flush()
        return order, [*transition.effects, *await CascadePropagator.on_warehouse_order_closed(db, order)]

    @staticmethod
    async def final_assembly_orders(db: AsyncSession, order_id: UUID) -> list[FinalAssemblyOrder]:
        result = await db.execute(
            select(FinalAssemblyOrder).where(
                FinalAssemblyOrder.parent_type == ParentType.WAREHOUSE_ORDER.value,
                FinalAssemblyOrder.parent_id == order_id,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def production_orders(db: AsyncSession, order_id: UUID) -> list[ProductionOrder]:
        result = await db.execute(
            select(ProductionOrder).where(
                ProductionOrder.parent_type == ParentType.WAREHOUSE_ORDER.value,
                ProductionOrder.parent_id == order_id,
            )
        )
        return list(result.scalars().all())
