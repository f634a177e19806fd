import uuid

import pytest

from orderflow.core.errors import ValidationFailure
from orderflow.services.audit_service import EVENT_COLLABORATOR_FAILURE
from orderflow.services.bom_service import BOMService

ORDER_ID = uuid.uuid4()


def _as_map(demands):
    return {(d.item_type, d.item_id): d.quantity for d in demands}


class TestExplodeProducts:
    async def test_aggregates_modules_across_items(self, bom):
        demands = await BOMService.explode_products(
            bom, [("PRODUCT", 1, 2), ("PRODUCT", 2, 1)], "CUSTOMER", ORDER_ID
        )
        assert _as_map(demands) == {("MODULE", 10): 4, ("MODULE", 11): 4}

    async def test_split_and_merged_demand_explode_identically(self, bom):
        split = await BOMService.explode_products(bom, [("PRODUCT", 1, 2), ("PRODUCT", 1, 3)], "CUSTOMER", ORDER_ID)
        merged = await BOMService.explode_products(bom, [("PRODUCT", 1, 5)], "CUSTOMER", ORDER_ID)
        assert _as_map(split) == _as_map(merged) == {("MODULE", 10): 5, ("MODULE", 11): 10}
        assert len({d.item_id for d in split}) == len(split)

    async def test_shared_module_keeps_every_product_share(self, bom):
        demands = await BOMService.explode_products(bom, [("PRODUCT", 2, 1), ("PRODUCT", 1, 1)], "CUSTOMER", ORDER_ID)
        by_module = {d.item_id: d for d in demands}
        assert by_module[10].quantity == 3
        assert by_module[10].products == {2: 2, 1: 1}
        assert by_module[11].products == {1: 2}

    async def test_non_products_pass_through(self, bom):
        demands = await BOMService.explode_products(bom, [("MODULE", 10, 3), ("PRODUCT", 2, 1)], "CUSTOMER", ORDER_ID)
        assert _as_map(demands) == {("MODULE", 10): 5}
        assert demands[0].products == {2: 2}

    def test_product_units(self):
        lines = [("PRODUCT", 1, 2), ("MODULE", 10, 4), ("PRODUCT", 1, 3), ("PRODUCT", 2, 0), ("PRODUCT", 2, 1)]
        assert BOMService.product_units(lines) == {1: 5, 2: 1}

    async def test_empty_bom_reports_every_product(self, bom):
        with pytest.raises(ValidationFailure) as exc_info:
            await BOMService.explode_products(bom, [("PRODUCT", 98, 1), ("PRODUCT", 99, 1)], "CUSTOMER", ORDER_ID)
        assert exc_info.value.errors == [
            "No modules found in BOM for product 98",
            "No modules found in BOM for product 99",
        ]

    async def test_resolver_outage_is_validation_failure_with_audit(self, bom):
        bom.down = True
        with pytest.raises(ValidationFailure) as exc_info:
            await BOMService.explode_products(bom, [("PRODUCT", 1, 1)], "CUSTOMER", ORDER_ID)
        assert [e.event_type for e in exc_info.value.effects] == [EVENT_COLLABORATOR_FAILURE]


class TestExplodeModule:
    async def test_parts(self, bom):
        parts, effects = await BOMService.explode_module(bom, 10, 3, "PRODUCTION", ORDER_ID)
        assert parts == {100: 6, 101: 3}
        assert effects == []

    async def test_outage_returns_empty(self, bom):
        bom.down = True
        parts, effects = await BOMService.explode_module(bom, 10, 3, "PRODUCTION", ORDER_ID)
        assert parts == {}
        assert effects[0].event_type == EVENT_COLLABORATOR_FAILURE
        assert effects[0].order_id == ORDER_ID


class TestLookupName:
    async def test_name(self, bom):
        assert await BOMService.lookup_name(bom, "MODULE", 10) == "Module 10"

    async def test_fallback_when_resolver_down(self, bom):
        bom.down = True
        assert await BOMService.lookup_name(bom, "PART", 7) == "PART #7"
