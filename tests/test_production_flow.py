"""Production orders, the shop floor beneath them and the cascades back up to the customer order."""
import pytest

from orderflow.core.errors import CollaboratorFailure, InvalidStateTransition, ValidationFailure
from orderflow.domain.effects import SyncScheduleTask
from orderflow.domain.scenario import Scenario
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.final_assembly_service import FinalAssemblyService
from orderflow.services.fulfillment_service import FulfillmentService
from orderflow.services.production_order_service import ProductionOrderService
from orderflow.services.warehouse_order_service import WarehouseOrderService
from orderflow.services.workstation_service import ControlOrderService, WorkstationOrderService

LARGE_LOT = 100


async def dispatch(db, gateways, production_order_id):
    await ProductionOrderService.confirm(db, production_order_id)
    await ProductionOrderService.schedule(db, gateways, production_order_id)
    controls, _ = await ProductionOrderService.dispatch(db, gateways, production_order_id)
    return controls


async def run_shop_floor(db, gateways, controls):
    for control in controls:
        for ws_order in list(control.workstation_orders):
            await WorkstationOrderService.start(db, ws_order.id)
            await WorkstationOrderService.complete(db, gateways, ws_order.id)


async def assemble(db, gateways, final_orders):
    for final_order in final_orders:
        await FinalAssemblyService.confirm(db, final_order.id)
        await FinalAssemblyService.start(db, final_order.id)
        await FinalAssemblyService.complete(db, final_order.id)
        await FinalAssemblyService.submit(db, gateways, final_order.id)


class TestStandaloneProductionOrder:
    async def test_lines_are_aggregated(self, db, gateways):
        order, effects = await ProductionOrderService.create_standalone(
            db,
            gateways,
            [{"item_id": 10, "quantity": 2}, {"item_id": 10, "quantity": 3}, {"item_id": 11, "quantity": 1}],
            priority="high",
            created_by_workstation_id=8,
        )
        assert order.order_number.startswith("PO-")
        assert order.parent_type is None
        assert order.priority == "HIGH"
        assert order.due_date is not None
        assert sorted((i.item_id, i.quantity) for i in order.items) == [(10, 5), (11, 1)]
        assert [e.event_type for e in effects] == ["CREATED"]

    async def test_reports_every_violation(self, db, gateways):
        with pytest.raises(ValidationFailure) as exc_info:
            await ProductionOrderService.create_standalone(
                db, gateways, [{"item_type": "PART", "item_id": 100, "quantity": 1}, {"item_id": -1, "quantity": 0}]
            )
        assert exc_info.value.errors == [
            "Item 1: only modules can be produced",
            "Item 2: item id must be a positive integer",
            "Item 2: quantity must be positive",
        ]


class TestScheduleAndDispatch:
    async def test_schedule_links_scheduler_receipt(self, db, gateways, scheduler):
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 10, "quantity": 1}])
        await ProductionOrderService.confirm(db, order.id)
        order, _ = await ProductionOrderService.schedule(db, gateways, order.id)
        assert order.status == "SCHEDULED"
        assert order.schedule_id == "SCH-1"
        assert order.estimated_duration_minutes == 90
        assert scheduler.submitted == [order.order_number]

    async def test_explicit_schedule_id_skips_scheduler(self, db, gateways, scheduler):
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 10, "quantity": 1}])
        await ProductionOrderService.confirm(db, order.id)
        order, _ = await ProductionOrderService.schedule(db, gateways, order.id, schedule_id="MANUAL-7")
        assert order.schedule_id == "MANUAL-7"
        assert scheduler.submitted == []

    async def test_scheduler_outage_leaves_order_unlinked(self, db, gateways, scheduler):
        scheduler.down = True
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 10, "quantity": 1}])
        await ProductionOrderService.confirm(db, order.id)
        order, effects = await ProductionOrderService.schedule(db, gateways, order.id)
        assert order.status == "SCHEDULED"
        assert order.schedule_id is None
        assert effects[0].event_type == "COLLABORATOR_FAILURE"

    async def test_schedule_requires_confirmation(self, db, gateways):
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 10, "quantity": 1}])
        with pytest.raises(InvalidStateTransition):
            await ProductionOrderService.schedule(db, gateways, order.id)

    async def test_dispatch_splits_by_tier(self, db, gateways):
        order, _ = await ProductionOrderService.create_standalone(
            db, gateways, [{"item_id": 10, "quantity": 2}, {"item_id": 11, "quantity": 3}]
        )
        controls = await dispatch(db, gateways, order.id)

        assert [c.control_type for c in controls] == ["PRODUCTION", "ASSEMBLY"]
        production, assembly = controls
        assert production.control_order_number.startswith("PCO-")
        assert assembly.control_order_number.startswith("ACO-")
        manufacturing_order = production.workstation_orders[0]
        assert manufacturing_order.workstation_id == 1
        assert manufacturing_order.kind == "INJECTION_MOLDING"
        assert manufacturing_order.required_items == [{"item_id": 102, "quantity": 9}]
        assert manufacturing_order.schedule_task_id == f"workstation-1-{manufacturing_order.order_number}"
        gear_order = assembly.workstation_orders[0]
        assert gear_order.kind == "GEAR_ASSEMBLY"
        assert gear_order.required_items == [{"item_id": 100, "quantity": 4}, {"item_id": 101, "quantity": 2}]
        assert (await ProductionOrderService.get(db, order.id)).status == "DISPATCHED"

    async def test_dispatch_without_parts_bom_fails(self, db, bom, gateways):
        bom.modules.pop(10)
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 10, "quantity": 1}])
        with pytest.raises(ValidationFailure, match="No parts found in BOM for module 10"):
            await dispatch(db, gateways, order.id)


class TestShopFloor:
    async def test_start_and_complete_cascade(self, db, inventory, gateways):
        order, _ = await ProductionOrderService.create_standalone(
            db, gateways, [{"item_id": 10, "quantity": 2}, {"item_id": 11, "quantity": 3}]
        )
        production, assembly = await dispatch(db, gateways, order.id)
        first = production.workstation_orders[0]

        first, effects = await WorkstationOrderService.start(db, first.id)
        assert first.status == "IN_PROGRESS"
        assert first.started_at is not None
        assert production.status == "IN_PROGRESS"
        assert (await ProductionOrderService.get(db, order.id)).status == "IN_PRODUCTION"
        assert SyncScheduleTask(first.schedule_task_id, "IN_PROGRESS") in effects

        first, effects = await WorkstationOrderService.complete(db, gateways, first.id)
        assert first.status == "COMPLETED"
        assert inventory.level(8, 11) == 3
        assert production.status == "COMPLETED"
        assert (await ProductionOrderService.progress(db, order.id))["completed"] == 1
        assert (await ProductionOrderService.get(db, order.id)).status == "IN_PRODUCTION"
        assert "WORKSTATION_ORDER_COMPLETED" in [getattr(e, "event_type", None) for e in effects]

        await run_shop_floor(db, gateways, [assembly])
        assert inventory.level(8, 10) == 2
        progress = await ProductionOrderService.progress(db, order.id)
        assert progress["status"] == "COMPLETED"
        assert progress["percentage"] == 100.0

    async def test_complete_requires_inventory_credit(self, db, inventory, gateways):
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 11, "quantity": 1}])
        (control,) = await dispatch(db, gateways, order.id)
        ws_order = control.workstation_orders[0]
        await WorkstationOrderService.start(db, ws_order.id)
        inventory.down = True

        with pytest.raises(CollaboratorFailure) as exc_info:
            await WorkstationOrderService.complete(db, gateways, ws_order.id)
        assert ws_order.status == "IN_PROGRESS"
        assert exc_info.value.effects[0].event_type == "COLLABORATOR_FAILURE"

    async def test_halt_resume_and_notes(self, db, gateways):
        order, _ = await ProductionOrderService.create_standalone(db, gateways, [{"item_id": 11, "quantity": 1}])
        (control,) = await dispatch(db, gateways, order.id)
        ws_order = control.workstation_orders[0]
        await WorkstationOrderService.start(db, ws_order.id)

        ws_order, effects = await WorkstationOrderService.halt(db, ws_order.id, "jammed mould")
        assert ws_order.status == "HALTED"
        assert ws_order.halt_reason == "jammed mould"
        assert SyncScheduleTask(ws_order.schedule_task_id, "HALTED") in effects

        ws_order, _ = await WorkstationOrderService.resume(db, ws_order.id)
        assert ws_order.status == "IN_PROGRESS"
        assert ws_order.halt_reason is None

        ws_order, effects = await WorkstationOrderService.update_operator_notes(db, ws_order.id, "cleared")
        assert ws_order.operator_notes == "cleared"
        assert effects[0].event_type == "NOTES_UPDATED"

    async def test_queries(self, db, gateways):
        order, _ = await ProductionOrderService.create_standalone(
            db, gateways, [{"item_id": 10, "quantity": 1}, {"item_id": 11, "quantity": 1}]
        )
        production, assembly = await dispatch(db, gateways, order.id)
        listed = await WorkstationOrderService.list_for_workstation(db, 4, active_only=True)
        assert [o.id for o in listed] == [assembly.workstation_orders[0].id]
        assert [c.id for c in await ControlOrderService.list_orders(db, control_type="assembly")] == [assembly.id]
        progress = await ControlOrderService.progress(db, production.id)
        assert progress == {
            "control_order_id": production.id,
            "status": "ASSIGNED",
            "completed": 0,
            "total": 1,
            "percentage": 0.0,
        }
        await WorkstationOrderService.cancel(db, gateways, assembly.workstation_orders[0].id, "not needed")
        assert await WorkstationOrderService.list_for_workstation(db, 4, active_only=True) == []

    async def test_cancelling_the_last_open_sibling_completes_the_control_order(self, db, bom, gateways):
        bom.modules[12] = {103: 1}
        bom.stations[12] = 4
        order, _ = await ProductionOrderService.create_standalone(
            db, gateways, [{"item_id": 10, "quantity": 1}, {"item_id": 12, "quantity": 1}]
        )
        (assembly,) = await dispatch(db, gateways, order.id)
        first, second = assembly.workstation_orders
        await WorkstationOrderService.start(db, first.id)
        await WorkstationOrderService.complete(db, gateways, first.id)
        assert assembly.status == "IN_PROGRESS"

        second, _ = await WorkstationOrderService.cancel(db, gateways, second.id, "module dropped")

        assert second.status == "CANCELLED"
        assert assembly.status == "COMPLETED"
        assert (await ProductionOrderService.get(db, order.id)).status == "COMPLETED"

    async def test_cancelling_before_any_completion_leaves_the_control_order_open(self, db, bom, gateways):
        bom.modules[12] = {103: 1}
        bom.stations[12] = 4
        order, _ = await ProductionOrderService.create_standalone(
            db, gateways, [{"item_id": 10, "quantity": 1}, {"item_id": 12, "quantity": 1}]
        )
        (assembly,) = await dispatch(db, gateways, order.id)
        first, second = assembly.workstation_orders
        await WorkstationOrderService.start(db, first.id)

        await WorkstationOrderService.cancel(db, gateways, second.id)

        assert assembly.status == "IN_PROGRESS"
        assert (await ProductionOrderService.get(db, order.id)).status == "IN_PRODUCTION"


class TestEndToEnd:
    async def test_warehouse_path_returns_to_direct_fulfillment(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        wo = outcome.warehouse_order

        await WarehouseOrderService.confirm(db, gateways, wo.id)
        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)
        assert wo.status == "PENDING_PRODUCTION"

        controls = await dispatch(db, gateways, wo.production_order_id)
        await run_shop_floor(db, gateways, controls)
        assert (await ProductionOrderService.get(db, wo.production_order_id)).status == "COMPLETED"
        assert wo.status == "MODULES_READY"

        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)
        assert wo.status == "FULFILLED"
        final_orders = await WarehouseOrderService.final_assembly_orders(db, wo.id)
        assert [(fa.output_product_id, fa.output_quantity) for fa in final_orders] == [(1, 5)]

        await assemble(db, gateways, final_orders)
        order = await CustomerOrderService.get(db, order.id)
        assert order.status == "CONFIRMED"
        assert order.trigger_scenario == "DIRECT_FULFILLMENT"
        assert inventory.level(7, 1) == 5

        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert outcome.scenario is Scenario.DIRECT_FULFILLMENT
        assert outcome.order.status == "COMPLETED"
        assert inventory.level(7, 1) == 0

    async def test_shared_module_order_completes_through_the_warehouse(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 1), ("PRODUCT", 2, 1), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        wo = outcome.warehouse_order
        inventory.put(8, 10, 3)
        inventory.put(8, 11, 2)
        await WarehouseOrderService.confirm(db, gateways, wo.id)
        await WarehouseOrderService.fulfill(db, gateways, wo.id)

        await assemble(db, gateways, await WarehouseOrderService.final_assembly_orders(db, wo.id))

        order = await CustomerOrderService.get(db, order.id)
        assert order.status == "CONFIRMED"
        assert (inventory.level(7, 1), inventory.level(7, 2)) == (1, 1)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert outcome.scenario is Scenario.DIRECT_FULFILLMENT
        assert outcome.order.status == "COMPLETED"
        assert len(await WarehouseOrderService.list_for_customer_order(db, order.id)) == 1

    async def test_customer_order_waits_for_open_warehouse_lines(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 1), ("PRODUCT", 2, 1), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        wo = outcome.warehouse_order
        inventory.put(8, 10, 3)
        await WarehouseOrderService.confirm(db, gateways, wo.id)
        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)
        early = await WarehouseOrderService.final_assembly_orders(db, wo.id)
        assert [(fa.output_product_id, fa.output_quantity) for fa in early] == [(2, 1)]

        controls = await dispatch(db, gateways, wo.production_order_id)
        await run_shop_floor(db, gateways, controls)
        assert wo.status == "MODULES_READY"
        await assemble(db, gateways, early)

        assert order.status == "PROCESSING"
        assert not await CustomerOrderService.can_complete(db, order.id)

        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)
        assert wo.status == "FULFILLED"
        late = [fa for fa in await WarehouseOrderService.final_assembly_orders(db, wo.id) if fa.status == "PENDING"]
        assert [(fa.output_product_id, fa.output_quantity) for fa in late] == [(1, 1)]
        await assemble(db, gateways, late)

        assert order.status == "CONFIRMED"
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert outcome.order.status == "COMPLETED"
        assert len(await WarehouseOrderService.list_for_customer_order(db, order.id)) == 1

    async def test_production_planning_path(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), confirm=True, threshold=3)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)
        production_order = outcome.production_order

        controls = await dispatch(db, gateways, production_order.id)
        await run_shop_floor(db, gateways, controls)

        final_orders = await FinalAssemblyService.list_for_parent(db, "production_order", production_order.id)
        assert [(fa.output_product_id, fa.output_quantity) for fa in final_orders] == [(1, 5)]
        assert not await CustomerOrderService.can_complete(db, order.id)

        await assemble(db, gateways, final_orders)
        assert (await CustomerOrderService.get(db, order.id)).status == "CONFIRMED"

        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)
        assert outcome.order.status == "COMPLETED"
        assert inventory.level(7, 1) == 0

    async def test_held_parts_are_fulfilled_after_assembly(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), ("PART", 100, 1), confirm=True, threshold=3)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)
        controls = await dispatch(db, gateways, outcome.production_order.id)
        await run_shop_floor(db, gateways, controls)

        final_orders = await FinalAssemblyService.list_for_parent(db, "production_order", outcome.production_order.id)
        assert [(fa.output_product_id, fa.output_quantity) for fa in final_orders] == [(1, 5)]
        await assemble(db, gateways, final_orders)
        assert order.status == "CONFIRMED"

        inventory.put(7, 100, 1, item_type="PART")
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)
        assert outcome.scenario is Scenario.DIRECT_FULFILLMENT
        assert outcome.order.status == "COMPLETED"
        assert inventory.level(7, 100, item_type="PART") == 0

    async def test_manual_completion_once_assembly_is_submitted(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), confirm=True, threshold=3)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)
        controls = await dispatch(db, gateways, outcome.production_order.id)
        await run_shop_floor(db, gateways, controls)
        final_orders = await FinalAssemblyService.list_for_parent(db, "PRODUCTION_ORDER", outcome.production_order.id)
        for final_order in final_orders:
            await FinalAssemblyService.confirm(db, final_order.id)
            await FinalAssemblyService.start(db, final_order.id)
            await FinalAssemblyService.complete(db, final_order.id)

        assert not await CustomerOrderService.can_complete(db, order.id)
        with pytest.raises(ValidationFailure):
            await CustomerOrderService.complete(db, order.id)
