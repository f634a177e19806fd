"""Scenario selection and BOM arithmetic (pure functions)."""
import uuid

import pytest

from orderflow.domain.bom import merge_requirements, scale_bom
from orderflow.domain.parents import (
    CustomerOrderParent,
    NoParent,
    WarehouseOrderParent,
    parent_from_columns,
    parent_to_columns,
)
from orderflow.domain.ports import schedule_task_id
from orderflow.domain.scenario import (
    Scenario,
    exceeds_lot_size,
    lot_quantity,
    predict_trigger_scenario,
    select_scenario,
)
from orderflow.domain.states import CustomerTriggerScenario
from orderflow.domain.workstations import (
    ItemType,
    WorkstationType,
    item_type_for_workstation,
    order_kind_for,
    workstation_type_for,
)


class TestSelectScenario:
    def test_all_available_is_direct(self):
        assert select_scenario([True, True], 5, 100) is Scenario.DIRECT_FULFILLMENT

    def test_full_stock_wins_over_lot_size(self):
        assert select_scenario([True], 50, 3) is Scenario.DIRECT_FULFILLMENT

    def test_none_available_is_warehouse(self):
        assert select_scenario([False, False], 5, 100) is Scenario.WAREHOUSE_ORDER

    def test_some_available_is_modules_supermarket(self):
        assert select_scenario([True, False], 5, 100) is Scenario.MODULES_SUPERMARKET

    def test_large_lot_with_short_stock_is_production_planning(self):
        assert select_scenario([False], 5, 5) is Scenario.PRODUCTION_PLANNING
        assert select_scenario([True, False], 5, 3) is Scenario.PRODUCTION_PLANNING

    def test_deterministic(self):
        flags = [True, False, True]
        assert {select_scenario(flags, 7, 10) for _ in range(5)} == {Scenario.MODULES_SUPERMARKET}

    def test_scenario_numbers(self):
        assert [s.number for s in Scenario] == [1, 2, 3, 4]


class TestPredictTriggerScenario:
    def test_direct(self):
        assert predict_trigger_scenario([True], 2, 3) is CustomerTriggerScenario.DIRECT_FULFILLMENT

    def test_warehouse_needed(self):
        assert predict_trigger_scenario([True, False], 2, 3) is CustomerTriggerScenario.WAREHOUSE_ORDER_NEEDED

    def test_large_lot(self):
        assert predict_trigger_scenario([False], 3, 3) is CustomerTriggerScenario.DIRECT_PRODUCTION


class TestLotSize:
    def test_threshold_is_inclusive(self):
        assert exceeds_lot_size(3, 3)
        assert not exceeds_lot_size(2, 3)

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError, match="at least 1"):
            exceeds_lot_size(1, 0)

    def test_only_producible_lines_count(self):
        assert lot_quantity([("PRODUCT", 1, 2), ("MODULE", 10, 1), ("PART", 100, 50)]) == 3
        assert lot_quantity([("PART", 100, 50)]) == 0


class TestBomArithmetic:
    def test_scale(self):
        assert scale_bom([(10, 1), (11, 2)], 5) == {10: 5, 11: 10}

    def test_duplicate_components_are_summed(self):
        assert scale_bom([(10, 1), (10, 2)], 2) == {10: 6}

    def test_merge_is_commutative(self):
        a, b = {10: 2, 11: 4}, {10: 3}
        assert merge_requirements(a, b) == merge_requirements(b, a) == {10: 5, 11: 4}


class TestWorkstations:
    def test_item_types(self):
        assert item_type_for_workstation(9) is ItemType.PART
        assert item_type_for_workstation(8) is ItemType.MODULE
        assert item_type_for_workstation(7) is ItemType.PRODUCT

    def test_control_tiers(self):
        assert workstation_type_for(2) is WorkstationType.MANUFACTURING
        assert workstation_type_for(5) is WorkstationType.ASSEMBLY
        assert workstation_type_for(8) is None
        assert workstation_type_for(None) is None

    def test_order_kinds(self):
        assert order_kind_for(4).value == "GEAR_ASSEMBLY"
        with pytest.raises(ValueError, match="does not run workstation orders"):
            order_kind_for(8)

    def test_schedule_task_id(self):
        assert schedule_task_id(3, "WSO-1234ABCD") == "workstation-3-WSO-1234ABCD"


class TestParents:
    def test_round_trip(self):
        parent = WarehouseOrderParent(uuid.uuid4())
        assert parent_from_columns(*parent_to_columns(parent)) == parent

    def test_missing_parent(self):
        assert parent_to_columns(NoParent()) == (None, None)
        assert isinstance(parent_from_columns(None, None), NoParent)

    def test_customer_parent_columns(self):
        order_id = uuid.uuid4()
        assert parent_to_columns(CustomerOrderParent(order_id)) == ("CUSTOMER_ORDER", order_id)
