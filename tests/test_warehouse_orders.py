import pytest

from orderflow.core.errors import InvalidStateTransition, ValidationFailure
from orderflow.services.fulfillment_service import FulfillmentService
from orderflow.services.warehouse_order_service import WarehouseOrderService

LARGE_LOT = 100


@pytest.fixture
def warehouse_order(db, gateways, place_order):
    """A PENDING warehouse order for 5 x product 1: module 10 x5 and module 11 x10."""

    async def _create():
        order = await place_order(("PRODUCT", 1, 5), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        return outcome.warehouse_order

    return _create


class TestConfirm:
    async def test_all_modules_in_stock(self, db, inventory, gateways, warehouse_order):
        wo = await warehouse_order()
        inventory.put(8, 10, 5)
        inventory.put(8, 11, 10)
        wo, effects = await WarehouseOrderService.confirm(db, gateways, wo.id)
        assert wo.status == "CONFIRMED"
        assert wo.trigger_scenario == "DIRECT_FULFILLMENT"
        assert effects[-1].message == "Warehouse order confirmed - Scenario: DIRECT_FULFILLMENT"

    async def test_missing_modules_require_production(self, db, inventory, gateways, warehouse_order):
        wo = await warehouse_order()
        inventory.put(8, 10, 5)
        wo, _ = await WarehouseOrderService.confirm(db, gateways, wo.id)
        assert wo.trigger_scenario == "PRODUCTION_REQUIRED"

    async def test_confirm_twice(self, db, gateways, warehouse_order):
        wo = await warehouse_order()
        await WarehouseOrderService.confirm(db, gateways, wo.id)
        with pytest.raises(InvalidStateTransition):
            await WarehouseOrderService.confirm(db, gateways, wo.id)


class TestFulfill:
    async def test_full_stock_releases_one_final_assembly_per_product(self, db, inventory, gateways, warehouse_order):
        wo = await warehouse_order()
        inventory.put(8, 10, 5)
        inventory.put(8, 11, 10)
        await WarehouseOrderService.confirm(db, gateways, wo.id)

        wo, effects = await WarehouseOrderService.fulfill(db, gateways, wo.id)

        assert wo.status == "FULFILLED"
        assert wo.production_order_id is None
        assert inventory.level(8, 10) == 0
        assert inventory.level(8, 11) == 0
        final_orders = await WarehouseOrderService.final_assembly_orders(db, wo.id)
        assert [(fa.output_product_id, fa.output_quantity) for fa in final_orders] == [(1, 5)]
        assert all(fa.status == "PENDING" and fa.workstation_id == 6 for fa in final_orders)
        assert wo.products[0].final_assembly_order_id == final_orders[0].id
        assert [e.event_type for e in effects].count("FINAL_ASSEMBLY_ORDER_CREATED") == 1

    async def test_shared_module_assembles_every_product(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 1), ("PRODUCT", 2, 1), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        wo = outcome.warehouse_order
        assert sorted((i.item_id, i.requested_quantity) for i in wo.items) == [(10, 3), (11, 2)]
        inventory.put(8, 10, 3)
        inventory.put(8, 11, 2)
        await WarehouseOrderService.confirm(db, gateways, wo.id)

        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)

        assert wo.status == "FULFILLED"
        final_orders = await WarehouseOrderService.final_assembly_orders(db, wo.id)
        assert sorted((fa.output_product_id, fa.output_quantity) for fa in final_orders) == [(1, 1), (2, 1)]

    async def test_product_waits_for_all_of_its_modules(self, db, inventory, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 1), ("PRODUCT", 2, 1), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        inventory.put(8, 10, 3)
        await WarehouseOrderService.confirm(db, gateways, outcome.warehouse_order.id)

        wo, _ = await WarehouseOrderService.fulfill(db, gateways, outcome.warehouse_order.id)

        assert wo.status == "PROCESSING"
        final_orders = await WarehouseOrderService.final_assembly_orders(db, wo.id)
        assert [(fa.output_product_id, fa.output_quantity) for fa in final_orders] == [(2, 1)]
        (production_order,) = await WarehouseOrderService.production_orders(db, wo.id)
        assert [(i.item_id, i.quantity) for i in production_order.items] == [(11, 2)]

    async def test_partial_stock_orders_production_for_the_rest(self, db, inventory, gateways, warehouse_order):
        wo = await warehouse_order()
        inventory.put(8, 10, 5)
        await WarehouseOrderService.confirm(db, gateways, wo.id)

        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)

        assert wo.status == "PROCESSING"
        lines = {i.item_id: i.fulfilled_quantity for i in wo.items}
        assert lines == {10: 5, 11: 0}
        assert await WarehouseOrderService.final_assembly_orders(db, wo.id) == []
        production_orders = await WarehouseOrderService.production_orders(db, wo.id)
        assert len(production_orders) == 1
        production_order = production_orders[0]
        assert wo.production_order_id == production_order.id
        assert [(i.item_id, i.quantity) for i in production_order.items] == [(11, 10)]
        assert production_order.trigger_scenario == "PRODUCTION_REQUIRED"
        assert production_order.source_customer_order_id == wo.parent_id

    async def test_no_stock_waits_for_production(self, db, gateways, warehouse_order):
        wo = await warehouse_order()
        await WarehouseOrderService.confirm(db, gateways, wo.id)
        wo, _ = await WarehouseOrderService.fulfill(db, gateways, wo.id)
        assert wo.status == "PENDING_PRODUCTION"
        assert await WarehouseOrderService.final_assembly_orders(db, wo.id) == []

    async def test_pending_order_cannot_be_fulfilled(self, db, gateways, warehouse_order):
        wo = await warehouse_order()
        with pytest.raises(InvalidStateTransition, match="requires one of: CONFIRMED, MODULES_READY"):
            await WarehouseOrderService.fulfill(db, gateways, wo.id)

    async def test_production_failure_reverses_debits(self, db, inventory, bom, gateways, warehouse_order):
        wo = await warehouse_order()
        inventory.put(8, 10, 5)
        await WarehouseOrderService.confirm(db, gateways, wo.id)
        bom.stations.pop(11)

        with pytest.raises(ValidationFailure):
            await WarehouseOrderService.fulfill(db, gateways, wo.id)
        assert inventory.level(8, 10) == 5


class TestQueries:
    async def test_list_and_cancel(self, db, gateways, warehouse_order):
        wo = await warehouse_order()
        assert [o.id for o in await WarehouseOrderService.list_orders(db, workstation_id=8)] == [wo.id]
        assert await WarehouseOrderService.list_orders(db, status="FULFILLED") == []
        wo, effects = await WarehouseOrderService.cancel(db, wo.id, "duplicate")
        assert wo.status == "CANCELLED"
        assert effects[0].message == "Warehouse order cancelled: duplicate"

    async def test_modules_ready_requires_waiting_order(self, db, gateways, warehouse_order):
        wo = await warehouse_order()
        with pytest.raises(InvalidStateTransition):
            await WarehouseOrderService.mark_modules_ready(db, wo.id)
