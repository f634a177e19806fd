"""ORDERFLOW — Fulfillment Scenario Router.

Scenario 1: Direct Fulfillment (all items available at the order's workstation)
    - Debit every item, mark the order COMPLETED.
    - A failed debit compensates the debits already made and cancels the order.

Scenario 2: Warehouse Order (nothing available)
    - BOM-explode products into aggregated module demand.
    - One WarehouseOrder at the Modules Supermarket, order -> PROCESSING.

Scenario 3: Modules Supermarket (partially available)
    - Fulfil available items directly, explode only the rest into a WarehouseOrder.

Scenario 4: Production Planning (stock short and product/module quantity >= lot-size threshold)
    - Bypass the warehouse tier: one ProductionOrder straight from the customer order.
    - PART lines are left out of the lot and stay open for the next fulfillment.

The scenario is re-derived from live stock every time; the one recorded at
confirmation is advisory only.
"""
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import OrderflowError
from orderflow.domain.effects import Effect, ReevaluateConfirmedOrders, audit
from orderflow.domain.parents import CustomerOrderParent
from orderflow.domain.ports import Gateways
from orderflow.domain.scenario import PRODUCIBLE_TYPES, Scenario, lot_quantity, select_scenario
from orderflow.domain.states import CUSTOMER_ORDER_MACHINE, SOURCE_CUSTOMER, CustomerTriggerScenario
from orderflow.models.customer_order import CustomerOrder, CustomerOrderItem
from orderflow.models.production_order import ProductionOrder
from orderflow.models.warehouse_order import WarehouseOrder
from orderflow.services.audit_service import (
    EVENT_FULFILLMENT_STARTED,
    EVENT_INVENTORY_UPDATE_FAILED,
    EVENT_SCENARIO_SELECTED,
    EVENT_STOCK_CREDITED,
    EVENT_STOCK_DEBITED,
)
from orderflow.services.bom_service import BOMService
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.order_factory import OrderFactory
from orderflow.services.stock_service import StockService

logger = logging.getLogger(__name__)


@dataclass
class FulfillmentOutcome:
    order: CustomerOrder
    scenario: Scenario
    warehouse_order: WarehouseOrder | None = None
    production_order: ProductionOrder | None = None


def _lines(items: list[CustomerOrderItem]) -> list[tuple[str, int, int]]:
    return [(i.item_type, i.item_id, i.remaining_quantity) for i in items]


class FulfillmentService:

    @staticmethod
    async def fulfill(
        db: AsyncSession, gateways: Gateways, order_id: UUID, lot_size_threshold: int
    ) -> tuple[FulfillmentOutcome, list[Effect]]:
        """Route a CONFIRMED customer order to the scenario its live stock dictates."""
        order = await CustomerOrderService.get(db, order_id, for_update=True)
        CUSTOMER_ORDER_MACHINE.next_state(order.status, "fulfill")

        effects: list[Effect] = [
            audit(SOURCE_CUSTOMER, order.id, EVENT_FULFILLMENT_STARTED, f"Fulfillment started for order {order.order_number}")
        ]
        open_items = [i for i in order.items if i.remaining_quantity > 0]
        flags, fx = await StockService.availability(
            gateways.inventory, order.workstation_id, _lines(open_items), SOURCE_CUSTOMER, order.id
        )
        effects.extend(fx)
        scenario = select_scenario(flags, lot_quantity(_lines(open_items)), lot_size_threshold)
        logger.info("Order %s routed to scenario %d (%s)", order.order_number, scenario.number, scenario.value)
        effects.append(
            audit(SOURCE_CUSTOMER, order.id, EVENT_SCENARIO_SELECTED, f"Scenario {scenario.number}: {scenario.value}")
        )

        available = [item for item, ok in zip(open_items, flags) if ok]
        unavailable = [item for item, ok in zip(open_items, flags) if not ok]
        try:
            if scenario is Scenario.DIRECT_FULFILLMENT:
                outcome, fx = await FulfillmentService._direct_fulfillment(db, gateways, order, open_items, lot_size_threshold)
            elif scenario is Scenario.PRODUCTION_PLANNING:
                outcome, fx = await FulfillmentService._production_planning(db, gateways, order, open_items)
            elif scenario is Scenario.MODULES_SUPERMARKET:
                outcome, fx = await FulfillmentService._modules_supermarket(
                    db, gateways, order, available, unavailable, lot_size_threshold
                )
            else:
                outcome, fx = await FulfillmentService._warehouse_order(db, gateways, order, open_items)
        except OrderflowError as exc:
            raise exc.with_effects([*effects, *exc.effects])
        effects.extend(fx)
        await db.flush()
        return outcome, effects

    @staticmethod
    async def _debit_items(
        gateways: Gateways, order: CustomerOrder, items: list[CustomerOrderItem]
    ) -> tuple[list[tuple[CustomerOrderItem, int]], list[CustomerOrderItem], list[Effect]]:
        """Debit each item; returns (debited, failed, effects). Stops nothing on failure."""
        debited, failed, effects = [], [], []
        for item in items:
            qty = item.remaining_quantity
            ok, fx = await StockService.debit(
                gateways.inventory, order.workstation_id, item.item_type, item.item_id, qty,
                SOURCE_CUSTOMER, order.id, notes=f"Customer order {order.order_number}",
            )
            effects.extend(fx)
            if ok:
                debited.append((item, qty))
            else:
                failed.append(item)
        return debited, failed, effects

    @staticmethod
    async def _compensate(
        gateways: Gateways, order: CustomerOrder, debited: list[tuple[CustomerOrderItem, int]]
    ) -> list[Effect]:
        """Credit back debits made before a failure."""
        effects: list[Effect] = []
        for item, qty in debited:
            ok, fx = await StockService.credit(
                gateways.inventory, order.workstation_id, item.item_type, item.item_id, qty,
                SOURCE_CUSTOMER, order.id, notes=f"Reversal for customer order {order.order_number}",
            )
            effects.extend(fx)
            if ok:
                effects.append(audit(SOURCE_CUSTOMER, order.id, EVENT_STOCK_CREDITED, f"Reversed debit of {item.item_type} {item.item_id} x{qty}"))
            else:
                logger.error("Could not reverse debit of %s %s x%s for order %s", item.item_type, item.item_id, qty, order.order_number)
        return effects

    @staticmethod
    async def _direct_fulfillment(
        db: AsyncSession, gateways: Gateways, order: CustomerOrder, items: list[CustomerOrderItem], lot_size_threshold: int
    ) -> tuple[FulfillmentOutcome, list[Effect]]:
        debited, failed, effects = await FulfillmentService._debit_items(gateways, order, items)
        if failed:
            logger.warning("Direct fulfillment of %s failed during inventory update", order.order_number)
            effects.extend(await FulfillmentService._compensate(gateways, order, debited))
            effects.append(
                audit(
                    SOURCE_CUSTOMER,
                    order.id,
                    EVENT_INVENTORY_UPDATE_FAILED,
                    "Debit failed for " + ", ".join(f"{i.item_type} {i.item_id}" for i in failed),
                )
            )
            transition = CUSTOMER_ORDER_MACHINE.apply(order, "cancel", "Inventory update failed during direct fulfillment")
            return FulfillmentOutcome(order, Scenario.DIRECT_FULFILLMENT), [*effects, *transition.effects]

        for item, qty in debited:
            item.record_fulfilled(qty)
            effects.append(audit(SOURCE_CUSTOMER, order.id, EVENT_STOCK_DEBITED, f"{item.item_type} {item.item_id} x{qty} debited at WS-{order.workstation_id}"))
        transition = CUSTOMER_ORDER_MACHINE.apply(order, "fulfill", "Order fulfilled directly (Scenario 1)")
        effects.extend(transition.effects)
        effects.append(ReevaluateConfirmedOrders(order.workstation_id, lot_size_threshold, exclude_order_id=order.id))
        logger.info("Order %s fulfilled directly", order.order_number)
        return FulfillmentOutcome(order, Scenario.DIRECT_FULFILLMENT), effects

    @staticmethod
    async def _warehouse_order(
        db: AsyncSession, gateways: Gateways, order: CustomerOrder, items: list[CustomerOrderItem]
    ) -> tuple[FulfillmentOutcome, list[Effect]]:
        demands = await BOMService.explode_products(gateways.bom, _lines(items), SOURCE_CUSTOMER, order.id)
        warehouse_order, effects = await OrderFactory.create_warehouse_order(
            db, gateways.bom, order, demands, BOMService.product_units(_lines(items))
        )
        order.trigger_scenario = CustomerTriggerScenario.WAREHOUSE_ORDER_NEEDED.value
        transition = CUSTOMER_ORDER_MACHINE.apply(
            order, "mark_processing", f"Scenario 2: waiting on warehouse order {warehouse_order.order_number}"
        )
        return FulfillmentOutcome(order, Scenario.WAREHOUSE_ORDER, warehouse_order=warehouse_order), [
            *effects, *transition.effects
        ]

    @staticmethod
    async def _modules_supermarket(
        db: AsyncSession,
        gateways: Gateways,
        order: CustomerOrder,
        available: list[CustomerOrderItem],
        unavailable: list[CustomerOrderItem],
        lot_size_threshold: int,
    ) -> tuple[FulfillmentOutcome, list[Effect]]:
        # Explode first so a BOM failure leaves stock untouched.
        await BOMService.explode_products(gateways.bom, _lines(unavailable), SOURCE_CUSTOMER, order.id)
        debited, failed, effects = await FulfillmentService._debit_items(gateways, order, available)
        try:
            lines = _lines(unavailable + failed)
            demands = await BOMService.explode_products(gateways.bom, lines, SOURCE_CUSTOMER, order.id)
            warehouse_order, fx = await OrderFactory.create_warehouse_order(
                db, gateways.bom, order, demands, BOMService.product_units(lines)
            )
        except OrderflowError as exc:
            compensation = await FulfillmentService._compensate(gateways, order, debited)
            raise exc.with_effects([*effects, *exc.effects, *compensation])
        effects.extend(fx)

        for item, qty in debited:
            item.record_fulfilled(qty)
            effects.append(audit(SOURCE_CUSTOMER, order.id, EVENT_STOCK_DEBITED, f"{item.item_type} {item.item_id} x{qty} debited at WS-{order.workstation_id}"))
        order.trigger_scenario = CustomerTriggerScenario.WAREHOUSE_ORDER_NEEDED.value
        transition = CUSTOMER_ORDER_MACHINE.apply(
            order,
            "mark_processing",
            f"Scenario 3: {len(debited)} items fulfilled locally, rest via warehouse order {warehouse_order.order_number}",
        )
        effects.extend(transition.effects)
        if debited:
            effects.append(ReevaluateConfirmedOrders(order.workstation_id, lot_size_threshold, exclude_order_id=order.id))
        return FulfillmentOutcome(order, Scenario.MODULES_SUPERMARKET, warehouse_order=warehouse_order), effects

    @staticmethod
    async def _production_planning(
        db: AsyncSession, gateways: Gateways, order: CustomerOrder, items: list[CustomerOrderItem]
    ) -> tuple[FulfillmentOutcome, list[Effect]]:
        lot = [i for i in items if i.item_type in PRODUCIBLE_TYPES]
        held = [i for i in items if i.item_type not in PRODUCIBLE_TYPES]
        demands = await BOMService.explode_products(gateways.bom, _lines(lot), SOURCE_CUSTOMER, order.id)
        production_order, effects = await OrderFactory.create_production_order(
            db,
            gateways.bom,
            CustomerOrderParent(order.id),
            demands,
            source_customer_order_id=order.id,
            trigger_scenario=CustomerTriggerScenario.DIRECT_PRODUCTION.value,
            notes=f"Scenario 4: production planning for customer order {order.order_number}",
        )
        order.trigger_scenario = CustomerTriggerScenario.DIRECT_PRODUCTION.value
        description = f"Scenario 4: routed to production order {production_order.order_number}"
        if held:
            # Parts stay open on the order and are fulfilled once assembly hands it back
            description += "; held for later fulfillment: " + ", ".join(f"{i.item_type} {i.item_id}" for i in held)
        transition = CUSTOMER_ORDER_MACHINE.apply(order, "mark_processing", description)
        return FulfillmentOutcome(order, Scenario.PRODUCTION_PLANNING, production_order=production_order), [
            *effects, *transition.effects
        ]
