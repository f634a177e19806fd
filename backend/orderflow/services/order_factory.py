"""ORDERFLOW — Downstream Order Factory.

Creates warehouse, production, control/workstation, supply and final-assembly
orders from a parent order plus BOM-resolved requirements. Every created order
starts in its initial status and is linked to exactly one structural parent.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import CollaboratorFailure, ValidationCollector, ValidationFailure
from orderflow.db.base import generate_order_number, utcnow
from orderflow.domain.effects import Effect, audit
from orderflow.domain.parents import (
    CustomerOrderParent,
    OrderParent,
    ProductionOrderParent,
    WarehouseOrderParent,
    parent_to_columns,
)
from orderflow.domain.ports import BomResolver, schedule_task_id
from orderflow.domain.states import (
    SOURCE_CONTROL,
    SOURCE_CUSTOMER,
    SOURCE_FINAL_ASSEMBLY,
    SOURCE_PRODUCTION,
    SOURCE_SUPPLY,
    SOURCE_WAREHOUSE,
    SOURCE_WORKSTATION,
    ControlOrderStatus,
    ControlOrderType,
    FinalAssemblyStatus,
    Priority,
    ProductionOrderStatus,
    SupplyOrderStatus,
    WarehouseOrderStatus,
    WorkstationOrderStatus,
)
from orderflow.domain.workstations import ItemType, Workstation, WorkstationType, order_kind_for, workstation_type_for
from orderflow.models.control_order import ControlOrder, WorkstationOrder
from orderflow.models.customer_order import CustomerOrder
from orderflow.models.final_assembly import FinalAssemblyOrder
from orderflow.models.production_order import ProductionOrder, ProductionOrderItem
from orderflow.models.supply_order import SupplyOrder, SupplyOrderItem
from orderflow.models.warehouse_order import WarehouseOrder, WarehouseOrderItem, WarehouseOrderProduct
from orderflow.services.audit_service import (
    EVENT_COLLABORATOR_FAILURE,
    EVENT_CREATED,
    EVENT_FINAL_ASSEMBLY_CREATED,
    EVENT_PRODUCTION_ORDER_CREATED,
    EVENT_SUPPLY_ORDER_CREATED,
    EVENT_WAREHOUSE_ORDER_CREATED,
)
from orderflow.services.bom_service import BOMService, ComponentDemand

logger = logging.getLogger(__name__)

PREFIX_WAREHOUSE = "WO-"
PREFIX_PRODUCTION = "PO-"
PREFIX_PRODUCTION_CONTROL = "PCO-"
PREFIX_ASSEMBLY_CONTROL = "ACO-"
PREFIX_WORKSTATION = "WSO-"
PREFIX_SUPPLY = "SO-"
PREFIX_FINAL_ASSEMBLY = "FA-"

DEFAULT_MODULE_MINUTES = 30

_CONTROL_TYPE_FOR = {
    WorkstationType.MANUFACTURING: (ControlOrderType.PRODUCTION, PREFIX_PRODUCTION_CONTROL),
    WorkstationType.ASSEMBLY: (ControlOrderType.ASSEMBLY, PREFIX_ASSEMBLY_CONTROL),
}


class OrderFactory:
    """Builds downstream orders; callers own the surrounding transaction."""

    @staticmethod
    async def create_warehouse_order(
        db: AsyncSession,
        resolver: BomResolver,
        customer_order: CustomerOrder,
        demands: list[ComponentDemand],
        products: dict[int, int],
    ) -> tuple[WarehouseOrder, list[Effect]]:
        """
        One WarehouseOrder at the Modules Supermarket carrying aggregated module
        demand, plus the product units (``products``: product id -> units) those
        modules are assembled into.
        """
        if not demands:
            raise ValidationFailure([f"No component demand to place for customer order {customer_order.order_number}"])

        parent_type, parent_id = parent_to_columns(CustomerOrderParent(customer_order.id))
        order = WarehouseOrder(
            order_number=generate_order_number(PREFIX_WAREHOUSE),
            parent_type=parent_type,
            parent_id=parent_id,
            workstation_id=Workstation.MODULES_SUPERMARKET.value,
            status=WarehouseOrderStatus.PENDING.value,
            notes=f"Auto-generated from customer order {customer_order.order_number}",
        )
        product_names = {
            product_id: await BOMService.lookup_name(resolver, ItemType.PRODUCT.value, product_id)
            for product_id in sorted(products)
        }
        for demand in demands:
            names = [product_names.get(product_id, f"PRODUCT #{product_id}") for product_id in sorted(demand.products)]
            order.items.append(
                WarehouseOrderItem(
                    item_type=demand.item_type,
                    item_id=demand.item_id,
                    item_name=await BOMService.lookup_name(resolver, demand.item_type, demand.item_id),
                    requested_quantity=demand.quantity,
                    fulfilled_quantity=0,
                    notes=f"For products: {', '.join(names)}" if names else None,
                )
            )
        for product_id, units in sorted(products.items()):
            order.products.append(
                WarehouseOrderProduct(
                    product_id=product_id,
                    product_name=product_names[product_id],
                    quantity=units,
                    module_ids=sorted(
                        d.item_id for d in demands if d.item_type == ItemType.MODULE.value and product_id in d.products
                    ),
                )
            )
        db.add(order)
        await db.flush()

        logger.info(
            "Created warehouse order %s with %d lines for customer order %s",
            order.order_number, len(order.items), customer_order.order_number,
        )
        return order, [
            audit(SOURCE_WAREHOUSE, order.id, EVENT_CREATED, order.notes),
            audit(
                SOURCE_CUSTOMER,
                customer_order.id,
                EVENT_WAREHOUSE_ORDER_CREATED,
                f"Warehouse order {order.order_number} created with {len(order.items)} module lines",
            ),
        ]

    @staticmethod
    async def create_production_order(
        db: AsyncSession,
        resolver: BomResolver,
        parent: OrderParent,
        demands: list[ComponentDemand],
        *,
        source_customer_order_id: UUID | None = None,
        trigger_scenario: str | None = None,
        priority: str | None = None,
        due_date: datetime | None = None,
        notes: str | None = None,
        created_by_workstation_id: int | None = None,
    ) -> tuple[ProductionOrder, list[Effect]]:
        """ProductionOrder for module demand; each line is routed to its module's production station."""
        errors = ValidationCollector()
        effects: list[Effect] = []
        audit_source, audit_id = _audit_target(parent)

        if not demands:
            errors.add("Production order needs at least one module")

        items = []
        for demand in demands:
            if demand.item_type != ItemType.MODULE.value:
                errors.add(f"Only modules can be produced; got {demand.item_type} {demand.item_id}")
                continue
            if demand.quantity <= 0:
                errors.add(f"Module {demand.item_id} quantity must be positive")
                continue
            try:
                workstation_id = await resolver.production_workstation(demand.item_id)
            except CollaboratorFailure as exc:
                logger.warning("Workstation lookup for module %s failed: %s", demand.item_id, exc)
                if audit_id is not None:
                    effects.append(audit(audit_source, audit_id, EVENT_COLLABORATOR_FAILURE, str(exc)))
                workstation_id = None
            workstation_type = workstation_type_for(workstation_id)
            if workstation_type is None:
                errors.add(f"Module {demand.item_id} has no valid production workstation ({workstation_id})")
                continue
            items.append(
                ProductionOrderItem(
                    item_type=ItemType.MODULE.value,
                    item_id=demand.item_id,
                    item_name=await BOMService.lookup_name(resolver, ItemType.MODULE.value, demand.item_id),
                    quantity=demand.quantity,
                    estimated_time_minutes=DEFAULT_MODULE_MINUTES,
                    workstation_type=workstation_type.value,
                    target_workstation_id=workstation_id,
                )
            )

        if errors.errors:
            raise ValidationFailure(errors.errors).with_effects(effects)

        parent_type, parent_id = parent_to_columns(parent)
        order = ProductionOrder(
            order_number=generate_order_number(PREFIX_PRODUCTION),
            parent_type=parent_type,
            parent_id=parent_id,
            source_customer_order_id=source_customer_order_id,
            status=ProductionOrderStatus.CREATED.value,
            priority=(priority or Priority.NORMAL.value).upper(),
            trigger_scenario=trigger_scenario,
            due_date=due_date or utcnow() + timedelta(days=1),
            created_by_workstation_id=created_by_workstation_id,
            notes=notes,
            items=items,
        )
        db.add(order)
        await db.flush()

        logger.info("Created production order %s with %d module lines", order.order_number, len(items))
        effects.append(audit(SOURCE_PRODUCTION, order.id, EVENT_CREATED, notes or f"Production order {order.order_number} created"))
        if audit_id is not None:
            effects.append(
                audit(audit_source, audit_id, EVENT_PRODUCTION_ORDER_CREATED, f"Production order {order.order_number} created")
            )
        return order, effects

    @staticmethod
    async def create_final_assembly_order(
        db: AsyncSession,
        resolver: BomResolver,
        parent: WarehouseOrderParent | ProductionOrderParent,
        product_id: int,
        quantity: int,
        source_number: str,
    ) -> tuple[FinalAssemblyOrder, list[Effect]]:
        parent_type, parent_id = parent_to_columns(parent)
        kind = "warehouse" if isinstance(parent, WarehouseOrderParent) else "production"
        order = FinalAssemblyOrder(
            order_number=generate_order_number(PREFIX_FINAL_ASSEMBLY),
            parent_type=parent_type,
            parent_id=parent_id,
            workstation_id=Workstation.FINAL_ASSEMBLY.value,
            output_product_id=product_id,
            output_product_name=await BOMService.lookup_name(resolver, ItemType.PRODUCT.value, product_id),
            output_quantity=quantity,
            status=FinalAssemblyStatus.PENDING.value,
            notes=f"Auto-created from {kind} order {source_number}",
        )
        db.add(order)
        await db.flush()
        audit_source, audit_id = _audit_target(parent)
        return order, [
            audit(SOURCE_FINAL_ASSEMBLY, order.id, EVENT_CREATED, order.notes),
            audit(
                audit_source,
                audit_id,
                EVENT_FINAL_ASSEMBLY_CREATED,
                f"Final assembly order {order.order_number} created for product #{product_id} qty {quantity}",
            ),
        ]

    @staticmethod
    async def create_control_orders(
        db: AsyncSession,
        resolver: BomResolver,
        production_order: ProductionOrder,
    ) -> tuple[list[ControlOrder], list[Effect]]:
        """
        One control order per workstation tier (manufacturing / assembly), each
        holding one WorkstationOrder per module with its BOM-exploded part inputs.
        """
        errors = ValidationCollector()
        effects: list[Effect] = []
        by_tier: dict[WorkstationType, list[ProductionOrderItem]] = defaultdict(list)
        for item in production_order.items:
            by_tier[WorkstationType(item.workstation_type)].append(item)
        if not by_tier:
            errors.add(f"Production order {production_order.order_number} has no items to dispatch")

        controls = []
        for tier in (WorkstationType.MANUFACTURING, WorkstationType.ASSEMBLY):
            if tier not in by_tier:
                continue
            control_type, prefix = _CONTROL_TYPE_FOR[tier]
            control = ControlOrder(
                control_order_number=generate_order_number(prefix),
                control_type=control_type.value,
                production_order_id=production_order.id,
                schedule_id=production_order.schedule_id,
                status=ControlOrderStatus.ASSIGNED.value,
                priority=production_order.priority,
                target_completion_time=production_order.expected_completion_time,
                instructions=", ".join(f"{i.item_name or i.item_id} x{i.quantity}" for i in by_tier[tier]),
            )
            for item in by_tier[tier]:
                parts, fx = await BOMService.explode_module(
                    resolver, item.item_id, item.quantity, SOURCE_PRODUCTION, production_order.id
                )
                effects.extend(fx)
                if not parts:
                    errors.add(f"No parts found in BOM for module {item.item_id}")
                    continue
                number = generate_order_number(PREFIX_WORKSTATION)
                control.workstation_orders.append(
                    WorkstationOrder(
                        order_number=number,
                        kind=order_kind_for(item.target_workstation_id).value,
                        workstation_id=item.target_workstation_id,
                        output_item_type=item.item_type,
                        output_item_id=item.item_id,
                        output_item_name=item.item_name,
                        quantity=item.quantity,
                        required_items=[{"item_id": pid, "quantity": qty} for pid, qty in sorted(parts.items())],
                        status=WorkstationOrderStatus.PENDING.value,
                        priority=production_order.priority,
                        schedule_task_id=(
                            schedule_task_id(item.target_workstation_id, number) if production_order.schedule_id else None
                        ),
                    )
                )
            controls.append(control)

        if errors.errors:
            raise ValidationFailure(errors.errors).with_effects(effects)

        db.add_all(controls)
        await db.flush()
        for control in controls:
            effects.append(
                audit(
                    SOURCE_CONTROL,
                    control.id,
                    EVENT_CREATED,
                    f"{control.control_type} control order {control.control_order_number} "
                    f"for production order {production_order.order_number}",
                )
            )
            for ws_order in control.workstation_orders:
                effects.append(
                    audit(
                        SOURCE_WORKSTATION,
                        ws_order.id,
                        EVENT_CREATED,
                        f"{ws_order.kind} order {ws_order.order_number} at WS-{ws_order.workstation_id}: "
                        f"{ws_order.quantity} x module #{ws_order.output_item_id}",
                    )
                )
        return controls, effects

    @staticmethod
    async def create_supply_order(
        db: AsyncSession,
        resolver: BomResolver,
        requesting_workstation_id: int,
        parts: dict[int, int],
        *,
        priority: str | None = None,
        requested_by_time: datetime | None = None,
        notes: str | None = None,
        source_control_order_id: UUID | None = None,
        source_control_order_type: str | None = None,
        workstation_order_id: UUID | None = None,
    ) -> tuple[SupplyOrder, list[Effect]]:
        errors = ValidationCollector()
        errors.check(bool(parts), "Supply order needs at least one part")
        for part_id, qty in parts.items():
            errors.check(qty > 0, f"Part {part_id} quantity must be positive")
        errors.raise_if_any()

        order = SupplyOrder(
            order_number=generate_order_number(PREFIX_SUPPLY),
            source_control_order_id=source_control_order_id,
            source_control_order_type=source_control_order_type,
            workstation_order_id=workstation_order_id,
            requesting_workstation_id=requesting_workstation_id,
            supply_workstation_id=Workstation.PARTS_SUPPLY_WAREHOUSE.value,
            priority=(priority or Priority.MEDIUM.value).upper(),
            requested_by_time=requested_by_time,
            status=SupplyOrderStatus.PENDING.value,
            notes=notes,
        )
        for part_id, qty in sorted(parts.items()):
            order.items.append(
                SupplyOrderItem(
                    part_id=part_id,
                    part_name=await BOMService.lookup_name(resolver, ItemType.PART.value, part_id),
                    quantity_requested=qty,
                )
            )
        db.add(order)
        await db.flush()
        effects: list[Effect] = [
            audit(
                SOURCE_SUPPLY,
                order.id,
                EVENT_CREATED,
                f"Supply order {order.order_number} for WS-{requesting_workstation_id}: {len(order.items)} parts",
            )
        ]
        if workstation_order_id is not None:
            effects.append(
                audit(SOURCE_WORKSTATION, workstation_order_id, EVENT_SUPPLY_ORDER_CREATED, f"Supply order {order.order_number} requested")
            )
        return order, effects


def _audit_target(parent: OrderParent) -> tuple[str, UUID | None]:
    """Audit stream of the parent an order was created for."""
    if isinstance(parent, CustomerOrderParent):
        return SOURCE_CUSTOMER, parent.customer_order_id
    if isinstance(parent, WarehouseOrderParent):
        return SOURCE_WAREHOUSE, parent.warehouse_order_id
    if isinstance(parent, ProductionOrderParent):
        return SOURCE_PRODUCTION, parent.production_order_id
    return SOURCE_PRODUCTION, None
