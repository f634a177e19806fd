"""ORDERFLOW — CustomerOrderService: lifecycle of customer orders (everything except fulfillment)."""
import logging
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import NotFound, ValidationCollector, ValidationFailure
from orderflow.db.base import generate_order_number
from orderflow.domain.effects import Effect, audit
from orderflow.domain.parents import ParentType
from orderflow.domain.ports import BomResolver, InventoryGateway
from orderflow.domain.scenario import lot_quantity, predict_trigger_scenario
from orderflow.domain.states import (
    CUSTOMER_ORDER_MACHINE,
    SOURCE_CUSTOMER,
    CustomerOrderStatus,
    FinalAssemblyStatus,
    ProductionOrderStatus,
    WarehouseOrderStatus,
)
from orderflow.domain.workstations import ItemType, Workstation
from orderflow.models.customer_order import CustomerOrder, CustomerOrderItem
from orderflow.models.final_assembly import FinalAssemblyOrder
from orderflow.models.production_order import ProductionOrder
from orderflow.models.warehouse_order import WarehouseOrder
from orderflow.services.audit_service import EVENT_CREATED, EVENT_DELETED, EVENT_SCENARIO_SELECTED, EVENT_SCENARIO_UPDATED
from orderflow.services.bom_service import BOMService
from orderflow.services.stock_service import StockService

logger = logging.getLogger(__name__)

PREFIX_CUSTOMER = "ORD-"
_OPEN_PRODUCTION = (
    ProductionOrderStatus.CREATED.value,
    ProductionOrderStatus.CONFIRMED.value,
    ProductionOrderStatus.SCHEDULED.value,
    ProductionOrderStatus.DISPATCHED.value,
    ProductionOrderStatus.IN_PRODUCTION.value,
)
_CLOSED_WAREHOUSE = (WarehouseOrderStatus.FULFILLED.value, WarehouseOrderStatus.CANCELLED.value)


class CustomerOrderService:
    """Create, query and move customer orders through their state machine."""

    @staticmethod
    async def get(db: AsyncSession, order_id: UUID, for_update: bool = False) -> CustomerOrder:
        stmt = select(CustomerOrder).where(CustomerOrder.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFound("CustomerOrder", order_id)
        return order

    @staticmethod
    async def get_by_number(db: AsyncSession, order_number: str) -> CustomerOrder:
        result = await db.execute(select(CustomerOrder).where(CustomerOrder.order_number == order_number))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("CustomerOrder", order_number)
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession, status: str | None = None, workstation_id: int | None = None
    ) -> list[CustomerOrder]:
        stmt = select(CustomerOrder).order_by(CustomerOrder.created_at.desc())
        if status:
            stmt = stmt.where(CustomerOrder.status == status.upper())
        if workstation_id is not None:
            stmt = stmt.where(CustomerOrder.workstation_id == workstation_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        resolver: BomResolver,
        workstation_id: int,
        lines_data: list[dict],
        notes: str | None = None,
    ) -> tuple[CustomerOrder, list[Effect]]:
        """Create a PENDING order after validating every line; all violations are reported together."""
        errors = ValidationCollector()
        errors.check(workstation_id in set(Workstation), f"Unknown workstation {workstation_id}")
        errors.check(bool(lines_data), "Order must contain at least one item")
        valid_types = {t.value for t in ItemType}
        for idx, line in enumerate(lines_data or [], start=1):
            item_type = str(line.get("item_type") or "").upper()
            item_id = line.get("item_id")
            quantity = line.get("quantity")
            errors.check(item_type in valid_types, f"Item {idx}: invalid item type {line.get('item_type')!r}")
            errors.check(isinstance(item_id, int) and item_id > 0, f"Item {idx}: item id must be a positive integer")
            errors.check(isinstance(quantity, int) and quantity > 0, f"Item {idx}: quantity must be positive")
        errors.raise_if_any()

        order = CustomerOrder(
            order_number=generate_order_number(PREFIX_CUSTOMER),
            workstation_id=workstation_id,
            status=CustomerOrderStatus.PENDING.value,
            notes=notes,
        )
        for line in lines_data:
            item_type = str(line["item_type"]).upper()
            order.items.append(
                CustomerOrderItem(
                    item_type=item_type,
                    item_id=line["item_id"],
                    item_name=line.get("item_name") or await BOMService.lookup_name(resolver, item_type, line["item_id"]),
                    quantity=line["quantity"],
                    fulfilled_quantity=0,
                    notes=line.get("notes"),
                )
            )
        db.add(order)
        await db.flush()
        logger.info("Created customer order %s at WS-%s with %d items", order.order_number, workstation_id, len(order.items))
        return order, [audit(SOURCE_CUSTOMER, order.id, EVENT_CREATED, f"Customer order {order.order_number} created")]

    @staticmethod
    async def _predict(
        inventory: InventoryGateway, order: CustomerOrder, lot_size_threshold: int
    ) -> tuple[str, list[Effect]]:
        lines = [(i.item_type, i.item_id, i.remaining_quantity) for i in order.items if i.remaining_quantity > 0]
        flags, effects = await StockService.availability(inventory, order.workstation_id, lines, SOURCE_CUSTOMER, order.id)
        return predict_trigger_scenario(flags, lot_quantity(lines), lot_size_threshold).value, effects

    @staticmethod
    async def confirm(
        db: AsyncSession, inventory: InventoryGateway, order_id: UUID, lot_size_threshold: int
    ) -> tuple[CustomerOrder, list[Effect]]:
        """PENDING -> CONFIRMED, recording the advisory trigger scenario."""
        order = await CustomerOrderService.get(db, order_id, for_update=True)
        transition = CUSTOMER_ORDER_MACHINE.apply(order, "confirm")
        scenario, effects = await CustomerOrderService._predict(inventory, order, lot_size_threshold)
        order.trigger_scenario = scenario
        await db.flush()
        logger.info("Customer order %s confirmed, predicted scenario %s", order.order_number, scenario)
        return order, [
            *transition.effects,
            *effects,
            audit(SOURCE_CUSTOMER, order.id, EVENT_SCENARIO_SELECTED, f"Order confirmed - Scenario: {scenario}"),
        ]

    @staticmethod
    async def check_current_scenario(
        db: AsyncSession, inventory: InventoryGateway, order_id: UUID, lot_size_threshold: int
    ) -> tuple[str | None, list[Effect]]:
        """Read-only re-evaluation; non-CONFIRMED orders report their stored scenario."""
        order = await CustomerOrderService.get(db, order_id)
        if order.status != CustomerOrderStatus.CONFIRMED.value:
            return order.trigger_scenario, []
        scenario, effects = await CustomerOrderService._predict(inventory, order, lot_size_threshold)
        if scenario != order.trigger_scenario:
            logger.warning(
                "Order %s scenario drifted: %s -> %s (stock levels changed)",
                order.order_number, order.trigger_scenario, scenario,
            )
        return scenario, effects

    @staticmethod
    async def reevaluate_confirmed_orders(
        db: AsyncSession,
        inventory: InventoryGateway,
        workstation_id: int,
        lot_size_threshold: int,
        exclude_order_id: UUID | None = None,
    ) -> list[Effect]:
        """Refresh the predicted scenario of every other CONFIRMED order at a workstation."""
        stmt = select(CustomerOrder).where(
            CustomerOrder.status == CustomerOrderStatus.CONFIRMED.value,
            CustomerOrder.workstation_id == workstation_id,
        )
        if exclude_order_id is not None:
            stmt = stmt.where(CustomerOrder.id != exclude_order_id)
        orders = list((await db.execute(stmt)).scalars().all())

        effects: list[Effect] = []
        for order in orders:
            scenario, fx = await CustomerOrderService._predict(inventory, order, lot_size_threshold)
            effects.extend(fx)
            if scenario != order.trigger_scenario:
                logger.info("Order %s trigger scenario %s -> %s", order.order_number, order.trigger_scenario, scenario)
                effects.append(
                    audit(
                        SOURCE_CUSTOMER,
                        order.id,
                        EVENT_SCENARIO_UPDATED,
                        f"Trigger scenario {order.trigger_scenario} -> {scenario} after stock moved at WS-{workstation_id}",
                    )
                )
                order.trigger_scenario = scenario
        await db.flush()
        return effects

    @staticmethod
    async def mark_processing(db: AsyncSession, order_id: UUID) -> tuple[CustomerOrder, list[Effect]]:
        order = await CustomerOrderService.get(db, order_id, for_update=True)
        transition = CUSTOMER_ORDER_MACHINE.apply(order, "mark_processing")
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def complete(db: AsyncSession, order_id: UUID) -> tuple[CustomerOrder, list[Effect]]:
        """PROCESSING -> COMPLETED, only once every derived final assembly order is submitted."""
        order = await CustomerOrderService.get(db, order_id, for_update=True)
        CUSTOMER_ORDER_MACHINE.next_state(order.status, "complete")
        if not await CustomerOrderService.assembly_finished(db, order.id):
            raise ValidationFailure(
                [f"Customer order {order.order_number} still has final assembly work outstanding"]
            )
        transition = CUSTOMER_ORDER_MACHINE.apply(order, "complete", f"Order {order.order_number} completed")
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def cancel(db: AsyncSession, order_id: UUID, reason: str | None = None) -> tuple[CustomerOrder, list[Effect]]:
        order = await CustomerOrderService.get(db, order_id, for_update=True)
        transition = CUSTOMER_ORDER_MACHINE.apply(
            order, "cancel", f"Order cancelled: {reason}" if reason else "Order cancelled"
        )
        await db.flush()
        return order, transition.effects

    @staticmethod
    async def delete(db: AsyncSession, order_id: UUID) -> tuple[UUID, list[Effect]]:
        """Physical delete, PENDING orders only."""
        order = await CustomerOrderService.get(db, order_id, for_update=True)
        CUSTOMER_ORDER_MACHINE.require(order.status, "delete", [CustomerOrderStatus.PENDING])
        number = order.order_number
        await db.delete(order)
        await db.flush()
        logger.info("Deleted customer order %s", number)
        return order_id, [audit(SOURCE_CUSTOMER, order_id, EVENT_DELETED, f"Customer order {number} deleted")]

    @staticmethod
    async def derived_orders(
        db: AsyncSession, order_id: UUID
    ) -> tuple[list[WarehouseOrder], list[ProductionOrder], list[FinalAssemblyOrder]]:
        """Every downstream order reachable from a customer order through its structural parents."""
        warehouse_orders = list(
            (
                await db.execute(
                    select(WarehouseOrder).where(
                        WarehouseOrder.parent_type == ParentType.CUSTOMER_ORDER.value,
                        WarehouseOrder.parent_id == order_id,
                    )
                )
            ).scalars().all()
        )
        wo_ids = [wo.id for wo in warehouse_orders]

        po_filter = (ProductionOrder.parent_type == ParentType.CUSTOMER_ORDER.value) & (ProductionOrder.parent_id == order_id)
        if wo_ids:
            po_filter = or_(
                po_filter,
                (ProductionOrder.parent_type == ParentType.WAREHOUSE_ORDER.value) & ProductionOrder.parent_id.in_(wo_ids),
            )
        production_orders = list((await db.execute(select(ProductionOrder).where(po_filter))).scalars().all())
        po_ids = [po.id for po in production_orders]

        fa_filters = []
        if wo_ids:
            fa_filters.append(
                (FinalAssemblyOrder.parent_type == ParentType.WAREHOUSE_ORDER.value) & FinalAssemblyOrder.parent_id.in_(wo_ids)
            )
        if po_ids:
            fa_filters.append(
                (FinalAssemblyOrder.parent_type == ParentType.PRODUCTION_ORDER.value) & FinalAssemblyOrder.parent_id.in_(po_ids)
            )
        final_orders: list[FinalAssemblyOrder] = []
        if fa_filters:
            result = await db.execute(
                select(FinalAssemblyOrder).where(or_(*fa_filters)).order_by(FinalAssemblyOrder.created_at)
            )
            final_orders = list(result.scalars().all())
        return warehouse_orders, production_orders, final_orders

    @staticmethod
    async def assembly_finished(db: AsyncSession, order_id: UUID, require_any: bool = True) -> bool:
        """
        True when every derived final assembly order is SUBMITTED, no derived
        production order is still running and every derived warehouse order is
        FULFILLED or CANCELLED. With ``require_any`` at least one final assembly
        order must exist.
        """
        warehouse_orders, production_orders, final_orders = await CustomerOrderService.derived_orders(db, order_id)
        if require_any and not final_orders:
            return False
        if any(wo.status not in _CLOSED_WAREHOUSE for wo in warehouse_orders):
            return False
        if any(po.status in _OPEN_PRODUCTION for po in production_orders):
            return False
        return all(fa.status == FinalAssemblyStatus.SUBMITTED.value for fa in final_orders)

    @staticmethod
    async def can_complete(db: AsyncSession, order_id: UUID) -> bool:
        order = await CustomerOrderService.get(db, order_id)
        if order.status != CustomerOrderStatus.PROCESSING.value:
            return False
        return await CustomerOrderService.assembly_finished(db, order.id)
