"""ORDERFLOW — Cascade Propagator.

Child completion notifies the structural parent:

    WorkstationOrder started    -> control order IN_PROGRESS, production order IN_PRODUCTION
    WorkstationOrder completed  -> control order counts it; last one completes the control order
    WorkstationOrder cancelled  -> same rollup, so a cancelled last sibling still closes the control order
    Control order completed     -> last one completes the production order
    ProductionOrder completed   -> parent WarehouseOrder MODULES_READY, or (Scenario 4)
                                   final assembly orders for the parent CustomerOrder
    FinalAssemblyOrder submitted -> once every derived final assembly order is SUBMITTED and every
    WarehouseOrder fulfilled        derived warehouse order is FULFILLED or CANCELLED, the
                                   CustomerOrder goes back to CONFIRMED / DIRECT_FULFILLMENT
"""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.db.base import utcnow
from orderflow.domain.effects import Effect, audit
from orderflow.domain.parents import CustomerOrderParent, ProductionOrderParent, WarehouseOrderParent
from orderflow.domain.ports import Gateways
from orderflow.domain.states import (
    CONTROL_ORDER_MACHINE,
    CUSTOMER_ORDER_MACHINE,
    PRODUCTION_ORDER_MACHINE,
    SOURCE_CONTROL,
    SOURCE_CUSTOMER,
    WAREHOUSE_ORDER_MACHINE,
    ControlOrderStatus,
    CustomerOrderStatus,
    CustomerTriggerScenario,
    WorkstationOrderStatus,
)
from orderflow.domain.workstations import ItemType
from orderflow.models.control_order import ControlOrder, WorkstationOrder
from orderflow.models.customer_order import CustomerOrder
from orderflow.models.final_assembly import FinalAssemblyOrder
from orderflow.models.production_order import ProductionOrder
from orderflow.models.warehouse_order import WarehouseOrder
from orderflow.services.audit_service import EVENT_ASSEMBLY_COMPLETE, EVENT_WORKSTATION_ORDER_COMPLETED
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.order_factory import OrderFactory

logger = logging.getLogger(__name__)

_DONE_WORK = (WorkstationOrderStatus.COMPLETED.value, WorkstationOrderStatus.CANCELLED.value)
_DONE_CONTROL = (ControlOrderStatus.COMPLETED.value, ControlOrderStatus.CANCELLED.value)


class CascadePropagator:

    @staticmethod
    async def on_workstation_order_started(db: AsyncSession, ws_order: WorkstationOrder) -> list[Effect]:
        effects: list[Effect] = []
        control = await db.get(ControlOrder, ws_order.control_order_id)
        if control is None:
            return effects
        if CONTROL_ORDER_MACHINE.can(control.status, "start"):
            control.actual_start_time = utcnow()
            effects.extend(
                CONTROL_ORDER_MACHINE.apply(control, "start", f"First workstation order {ws_order.order_number} started").effects
            )
        production_order = await db.get(ProductionOrder, control.production_order_id)
        if production_order is not None and PRODUCTION_ORDER_MACHINE.can(production_order.status, "start"):
            effects.extend(PRODUCTION_ORDER_MACHINE.apply(production_order, "start", "Production started on the shop floor").effects)
        return effects

    @staticmethod
    async def on_workstation_order_completed(
        db: AsyncSession, gateways: Gateways, ws_order: WorkstationOrder
    ) -> list[Effect]:
        """Any-child cascade: every completion is reported to the control order."""
        control = await db.get(ControlOrder, ws_order.control_order_id)
        if control is None:
            logger.warning("Workstation order %s has no control order", ws_order.order_number)
            return []
        orders = control.workstation_orders
        done = sum(1 for o in orders if o.status == WorkstationOrderStatus.COMPLETED.value)
        effects: list[Effect] = [
            audit(
                SOURCE_CONTROL,
                control.id,
                EVENT_WORKSTATION_ORDER_COMPLETED,
                f"{ws_order.order_number} completed at WS-{ws_order.workstation_id} ({done}/{len(orders)})",
            )
        ]
        effects.extend(await CascadePropagator._rollup(db, gateways, control))
        return effects

    @staticmethod
    async def on_workstation_order_cancelled(
        db: AsyncSession, gateways: Gateways, ws_order: WorkstationOrder
    ) -> list[Effect]:
        """A cancelled sibling may be the last open one under its control order."""
        control = await db.get(ControlOrder, ws_order.control_order_id)
        if control is None:
            return []
        return await CascadePropagator._rollup(db, gateways, control)

    @staticmethod
    async def _rollup(db: AsyncSession, gateways: Gateways, control: ControlOrder) -> list[Effect]:
        """Complete the control order once every workstation order under it is COMPLETED or CANCELLED."""
        orders = control.workstation_orders
        if not any(o.status == WorkstationOrderStatus.COMPLETED.value for o in orders):
            return []
        if not all(o.status in _DONE_WORK for o in orders) or not CONTROL_ORDER_MACHINE.can(control.status, "complete"):
            return []
        control.actual_completion_time = utcnow()
        effects = CONTROL_ORDER_MACHINE.apply(control, "complete", "All workstation orders completed").effects
        return [*effects, *await CascadePropagator.on_control_order_completed(db, gateways, control)]

    @staticmethod
    async def on_control_order_completed(db: AsyncSession, gateways: Gateways, control: ControlOrder) -> list[Effect]:
        production_order = await db.get(ProductionOrder, control.production_order_id)
        if production_order is None:
            return []
        result = await db.execute(select(ControlOrder).where(ControlOrder.production_order_id == production_order.id))
        controls = list(result.scalars().all())
        if not all(c.status in _DONE_CONTROL for c in controls):
            return []
        if not PRODUCTION_ORDER_MACHINE.can(production_order.status, "complete"):
            return []
        production_order.actual_completion_time = utcnow()
        effects = PRODUCTION_ORDER_MACHINE.apply(
            production_order, "complete", f"All {len(controls)} control orders completed"
        ).effects
        return [*effects, *await CascadePropagator.on_production_order_completed(db, gateways, production_order)]

    @staticmethod
    async def on_production_order_completed(
        db: AsyncSession, gateways: Gateways, production_order: ProductionOrder
    ) -> list[Effect]:
        parent = production_order.parent
        if isinstance(parent, WarehouseOrderParent):
            warehouse_order = await db.get(WarehouseOrder, parent.warehouse_order_id)
            if warehouse_order is not None and WAREHOUSE_ORDER_MACHINE.can(warehouse_order.status, "modules_ready"):
                return WAREHOUSE_ORDER_MACHINE.apply(
                    warehouse_order, "modules_ready", f"Production order {production_order.order_number} completed"
                ).effects
            return []

        if isinstance(parent, CustomerOrderParent):
            customer_order = await db.get(CustomerOrder, parent.customer_order_id)
            if customer_order is None:
                return []
            effects: list[Effect] = []
            for item in customer_order.items:
                if item.item_type != ItemType.PRODUCT.value or item.remaining_quantity <= 0:
                    continue
                _, fx = await OrderFactory.create_final_assembly_order(
                    db,
                    gateways.bom,
                    ProductionOrderParent(production_order.id),
                    item.item_id,
                    item.remaining_quantity,
                    production_order.order_number,
                )
                effects.extend(fx)
            return effects

        return []

    @staticmethod
    async def on_final_assembly_submitted(db: AsyncSession, final_order: FinalAssemblyOrder) -> list[Effect]:
        """Last-child cascade back to the customer order."""
        await db.flush()
        customer_order_id = None
        parent = final_order.parent
        if isinstance(parent, WarehouseOrderParent):
            warehouse_order = await db.get(WarehouseOrder, parent.warehouse_order_id)
            customer_order_id = warehouse_order.source_customer_order_id if warehouse_order else None
        elif isinstance(parent, ProductionOrderParent):
            production_order = await db.get(ProductionOrder, parent.production_order_id)
            if production_order is not None:
                upstream = production_order.parent
                if isinstance(upstream, CustomerOrderParent):
                    customer_order_id = upstream.customer_order_id
                elif isinstance(upstream, WarehouseOrderParent):
                    warehouse_order = await db.get(WarehouseOrder, upstream.warehouse_order_id)
                    customer_order_id = warehouse_order.source_customer_order_id if warehouse_order else None
        if customer_order_id is None:
            return []
        return await CascadePropagator._assembly_ready(
            db, customer_order_id, f"Final assembly order {final_order.order_number} was the last to be submitted"
        )

    @staticmethod
    async def on_warehouse_order_closed(db: AsyncSession, warehouse_order: WarehouseOrder) -> list[Effect]:
        """A warehouse order that closes after its final assembly orders were submitted releases the customer order."""
        customer_order_id = warehouse_order.source_customer_order_id
        if customer_order_id is None:
            return []
        await db.flush()
        return await CascadePropagator._assembly_ready(
            db, customer_order_id, f"Warehouse order {warehouse_order.order_number} closed as {warehouse_order.status}"
        )

    @staticmethod
    async def _assembly_ready(db: AsyncSession, customer_order_id: UUID, description: str) -> list[Effect]:
        customer_order = await db.get(CustomerOrder, customer_order_id)
        if customer_order is None or customer_order.status != CustomerOrderStatus.PROCESSING.value:
            return []
        if not await CustomerOrderService.assembly_finished(db, customer_order.id):
            return []

        customer_order.trigger_scenario = CustomerTriggerScenario.DIRECT_FULFILLMENT.value
        transition = CUSTOMER_ORDER_MACHINE.apply(
            customer_order, "assembly_ready", "All final assembly orders submitted; ready for direct fulfillment"
        )
        logger.info("Customer order %s ready for fulfillment after final assembly", customer_order.order_number)
        return [
            *transition.effects,
            audit(SOURCE_CUSTOMER, customer_order.id, EVENT_ASSEMBLY_COMPLETE, description),
        ]
