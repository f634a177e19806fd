"""Scenario Router: the four fulfillment paths and their failure handling."""
import pytest

from orderflow.core.errors import InvalidStateTransition, ValidationFailure
from orderflow.domain.effects import NotifyWebhooks, RecordAudit, ReevaluateConfirmedOrders
from orderflow.domain.scenario import Scenario
from orderflow.services.audit_service import (
    EVENT_COLLABORATOR_FAILURE,
    EVENT_INVENTORY_UPDATE_FAILED,
    EVENT_STOCK_CREDITED,
)
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.fulfillment_service import FulfillmentService
from orderflow.services.warehouse_order_service import WarehouseOrderService

LARGE_LOT = 100


def _events(effects):
    return [e.event_type for e in effects if isinstance(e, RecordAudit)]


class TestDirectFulfillment:
    async def test_full_stock_completes_order_and_debits(self, db, inventory, gateways, place_order):
        inventory.put(7, 1, 8)
        order = await place_order(("PRODUCT", 1, 5), confirm=True)

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)

        assert outcome.scenario is Scenario.DIRECT_FULFILLMENT
        assert outcome.order.status == "COMPLETED"
        assert outcome.order.items[0].fulfilled_quantity == 5
        assert inventory.level(7, 1) == 3
        assert outcome.warehouse_order is None
        assert any(isinstance(e, NotifyWebhooks) and e.event_type == "COMPLETED" for e in effects)
        assert ReevaluateConfirmedOrders(7, LARGE_LOT, exclude_order_id=order.id) in effects

    async def test_full_stock_wins_even_for_large_lots(self, db, inventory, gateways, place_order):
        inventory.put(7, 1, 5)
        order = await place_order(("PRODUCT", 1, 5), confirm=True, threshold=3)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)
        assert outcome.scenario is Scenario.DIRECT_FULFILLMENT

    async def test_failed_debit_cancels_and_reverses(self, db, inventory, gateways, place_order):
        inventory.put(7, 1, 5)
        inventory.put(7, 2, 5)
        inventory.failing_debits.add(2)
        order = await place_order(("PRODUCT", 1, 5), ("PRODUCT", 2, 1), confirm=True)

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)

        assert outcome.order.status == "CANCELLED"
        assert inventory.level(7, 1) == 5
        assert all(item.fulfilled_quantity == 0 for item in outcome.order.items)
        events = _events(effects)
        assert EVENT_STOCK_CREDITED in events
        assert EVENT_INVENTORY_UPDATE_FAILED in events
        assert any(isinstance(e, NotifyWebhooks) and e.event_type == "CANCELLED" for e in effects)

    async def test_requires_confirmed_order(self, db, inventory, gateways, place_order):
        inventory.put(7, 1, 5)
        order = await place_order(("PRODUCT", 1, 5))
        with pytest.raises(InvalidStateTransition):
            await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert inventory.level(7, 1) == 5


class TestWarehouseOrderScenario:
    async def test_no_stock_creates_aggregated_warehouse_order(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), confirm=True)

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)

        assert outcome.scenario is Scenario.WAREHOUSE_ORDER
        assert outcome.order.status == "PROCESSING"
        assert outcome.order.trigger_scenario == "WAREHOUSE_ORDER_NEEDED"
        warehouse_order = outcome.warehouse_order
        assert warehouse_order.workstation_id == 8
        assert warehouse_order.status == "PENDING"
        assert warehouse_order.order_number.startswith("WO-")
        assert warehouse_order.source_customer_order_id == order.id
        assert {(i.item_id, i.requested_quantity) for i in warehouse_order.items} == {(10, 5), (11, 10)}
        assert [(p.product_id, p.quantity, p.module_ids) for p in warehouse_order.products] == [(1, 5, [10, 11])]
        assert "WAREHOUSE_ORDER_CREATED" in _events(effects)

    async def test_duplicate_modules_share_one_line(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 1), ("PRODUCT", 2, 2), confirm=True)
        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert sorted((i.item_id, i.requested_quantity) for i in outcome.warehouse_order.items) == [(10, 5), (11, 2)]
        products = [(p.product_id, p.quantity, p.module_ids) for p in outcome.warehouse_order.products]
        assert products == [(1, 1, [10, 11]), (2, 2, [10])]

    async def test_inventory_outage_fails_safe_to_warehouse_order(self, db, inventory, gateways, place_order):
        inventory.put(7, 1, 5)
        order = await place_order(("PRODUCT", 1, 5), confirm=True)
        inventory.down = True

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)

        assert outcome.scenario is Scenario.WAREHOUSE_ORDER
        assert EVENT_COLLABORATOR_FAILURE in _events(effects)

    async def test_empty_bom_is_validation_failure(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 99, 1), confirm=True)
        with pytest.raises(ValidationFailure, match="No modules found in BOM for product 99") as exc_info:
            await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert "FULFILLMENT_STARTED" in _events(exc_info.value.effects)
        assert await WarehouseOrderService.list_for_customer_order(db, order.id) == []


class TestModulesSupermarketScenario:
    async def test_partial_stock_splits_the_order(self, db, inventory, gateways, place_order):
        inventory.put(7, 2, 1)
        order = await place_order(("PRODUCT", 1, 2), ("PRODUCT", 2, 1), confirm=True)

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)

        assert outcome.scenario is Scenario.MODULES_SUPERMARKET
        assert outcome.order.status == "PROCESSING"
        fulfilled = {i.item_id: i.fulfilled_quantity for i in outcome.order.items}
        assert fulfilled == {1: 0, 2: 1}
        assert inventory.level(7, 2) == 0
        assert sorted((i.item_id, i.requested_quantity) for i in outcome.warehouse_order.items) == [(10, 2), (11, 4)]
        assert any(isinstance(e, ReevaluateConfirmedOrders) for e in effects)

    async def test_bom_failure_leaves_stock_untouched(self, db, inventory, gateways, place_order):
        inventory.put(7, 2, 1)
        order = await place_order(("PRODUCT", 99, 1), ("PRODUCT", 2, 1), confirm=True)
        with pytest.raises(ValidationFailure):
            await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert inventory.level(7, 2) == 1


class TestProductionPlanningScenario:
    async def test_large_lot_bypasses_warehouse(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), confirm=True, threshold=3)

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, 3)

        assert outcome.scenario is Scenario.PRODUCTION_PLANNING
        assert outcome.warehouse_order is None
        production_order = outcome.production_order
        assert production_order.status == "CREATED"
        assert production_order.parent_type == "CUSTOMER_ORDER"
        assert production_order.parent_id == order.id
        assert production_order.trigger_scenario == "DIRECT_PRODUCTION"
        assert production_order.priority == "NORMAL"
        assert {(i.item_id, i.quantity, i.workstation_type) for i in production_order.items} == {
            (10, 5, "ASSEMBLY"),
            (11, 10, "MANUFACTURING"),
        }
        assert outcome.order.status == "PROCESSING"
        assert await WarehouseOrderService.list_for_customer_order(db, order.id) == []
        assert "PRODUCTION_ORDER_CREATED" in _events(effects)

    async def test_unknown_production_station_is_reported(self, db, bom, gateways, place_order):
        bom.stations.pop(11)
        order = await place_order(("PRODUCT", 1, 5), confirm=True, threshold=3)
        with pytest.raises(ValidationFailure, match="Module 11 has no valid production workstation"):
            await FulfillmentService.fulfill(db, gateways, order.id, 3)

    async def test_part_lines_stay_out_of_the_production_lot(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 5), ("PART", 100, 1), confirm=True, threshold=3)

        outcome, effects = await FulfillmentService.fulfill(db, gateways, order.id, 3)

        assert outcome.scenario is Scenario.PRODUCTION_PLANNING
        assert sorted((i.item_id, i.quantity) for i in outcome.production_order.items) == [(10, 5), (11, 10)]
        assert outcome.order.status == "PROCESSING"
        assert {i.item_id: i.remaining_quantity for i in outcome.order.items} == {1: 5, 100: 1}
        assert any("held for later fulfillment: PART 100" in e.message for e in effects if isinstance(e, RecordAudit))

    async def test_parts_alone_never_make_a_production_lot(self, db, gateways, place_order):
        order = await place_order(("PART", 100, 5), confirm=True, threshold=3)
        assert order.trigger_scenario == "WAREHOUSE_ORDER_NEEDED"

        outcome, _ = await FulfillmentService.fulfill(db, gateways, order.id, 3)

        assert outcome.scenario is Scenario.WAREHOUSE_ORDER
        assert outcome.production_order is None


class TestRepeatedFulfillment:
    async def test_same_inventory_same_scenario(self, db, inventory, gateways, place_order):
        inventory.put(7, 2, 1)
        first = await place_order(("PRODUCT", 1, 2), ("PRODUCT", 2, 1), confirm=True)
        inventory_snapshot = dict(inventory.stock)
        outcome_a, _ = await FulfillmentService.fulfill(db, gateways, first.id, LARGE_LOT)

        inventory.stock = inventory_snapshot
        second = await place_order(("PRODUCT", 1, 2), ("PRODUCT", 2, 1), confirm=True)
        outcome_b, _ = await FulfillmentService.fulfill(db, gateways, second.id, LARGE_LOT)

        assert outcome_a.scenario is outcome_b.scenario is Scenario.MODULES_SUPERMARKET

    async def test_processing_order_cannot_be_fulfilled_again(self, db, gateways, place_order):
        order = await place_order(("PRODUCT", 1, 1), confirm=True)
        await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        with pytest.raises(InvalidStateTransition):
            await FulfillmentService.fulfill(db, gateways, order.id, LARGE_LOT)
        assert len(await WarehouseOrderService.list_for_customer_order(db, order.id)) == 1
        assert (await CustomerOrderService.get(db, order.id)).status == "PROCESSING"
