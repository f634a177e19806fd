import pytest

from orderflow.core.errors import CollaboratorFailure, InvalidStateTransition
from orderflow.services.final_assembly_service import FinalAssemblyService
from orderflow.services.fulfillment_service import FulfillmentService
from orderflow.services.warehouse_order_service import WarehouseOrderService


@pytest.fixture
def final_assembly_orders(db, inventory, gateways, place_order):
    """Final assembly orders of a warehouse order that was fully served from stock."""

    async def _create():
        order = await place_order(("PRODUCT", 2, 3), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 100)
        wo = outcome.warehouse_order
        inventory.put(8, 10, 6)
        await WarehouseOrderService.confirm(db, gateways, wo.id)
        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)
        return order, wo, await WarehouseOrderService.final_assembly_orders(db, wo.id)

    return _create


class TestFinalAssembly:
    async def test_lifecycle_timestamps(self, db, final_assembly_orders):
        _, wo, (final_order,) = await final_assembly_orders()
        assert final_order.order_number.startswith("FA-")
        assert final_order.notes == f"Auto-created from warehouse order {wo.order_number}"
        assert (final_order.output_product_id, final_order.output_quantity) == (2, 3)

        final_order, _ = await FinalAssemblyService.confirm(db, final_order.id)
        final_order, _ = await FinalAssemblyService.start(db, final_order.id)
        assert final_order.start_time is not None
        final_order, _ = await FinalAssemblyService.complete(db, final_order.id)
        assert final_order.status == "COMPLETED"
        assert final_order.completion_time is not None

    async def test_submit_credits_plant_warehouse_and_reopens_customer_order(
        self, db, inventory, gateways, final_assembly_orders
    ):
        order, _, (final_order,) = await final_assembly_orders()
        for step in (FinalAssemblyService.confirm, FinalAssemblyService.start, FinalAssemblyService.complete):
            await step(db, final_order.id)

        final_order, effects = await FinalAssemblyService.submit(db, gateways, final_order.id)

        assert final_order.status == "SUBMITTED"
        assert final_order.submit_time is not None
        assert inventory.level(7, 2) == 3
        assert order.status == "CONFIRMED"
        assert order.trigger_scenario == "DIRECT_FULFILLMENT"
        assert "ASSEMBLY_COMPLETE" in [getattr(e, "event_type", None) for e in effects]

    async def test_submit_needs_inventory_credit(self, db, inventory, gateways, final_assembly_orders):
        order, _, (final_order,) = await final_assembly_orders()
        for step in (FinalAssemblyService.confirm, FinalAssemblyService.start, FinalAssemblyService.complete):
            await step(db, final_order.id)
        inventory.down = True

        with pytest.raises(CollaboratorFailure, match="Plant Warehouse credit"):
            await FinalAssemblyService.submit(db, gateways, final_order.id)
        assert final_order.status == "COMPLETED"
        assert order.status == "PROCESSING"

    async def test_submit_requires_completion(self, db, gateways, final_assembly_orders):
        _, _, (final_order,) = await final_assembly_orders()
        with pytest.raises(InvalidStateTransition):
            await FinalAssemblyService.submit(db, gateways, final_order.id)

    async def test_queries(self, db, final_assembly_orders):
        _, wo, (final_order,) = await final_assembly_orders()
        assert [o.id for o in await FinalAssemblyService.list_orders(db, status="pending")] == [final_order.id]
        assert [o.id for o in await FinalAssemblyService.list_for_parent(db, "warehouse_order", wo.id)] == [final_order.id]
        assert await FinalAssemblyService.list_for_parent(db, "production_order", wo.id) == []
