"""ORDERFLOW — Fulfillment scenario selection.

Both selectors are pure: the result depends only on per-item stock
availability, the order's lot quantity and the lot-size threshold, so
re-running them against identical inventory yields the identical answer.
"""
from collections.abc import Iterable, Sequence
from enum import Enum

from orderflow.domain.states import CustomerTriggerScenario
from orderflow.domain.workstations import ItemType

PRODUCIBLE_TYPES = (ItemType.PRODUCT.value, ItemType.MODULE.value)


class Scenario(str, Enum):
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"        # Scenario 1
    WAREHOUSE_ORDER = "WAREHOUSE_ORDER"              # Scenario 2
    MODULES_SUPERMARKET = "MODULES_SUPERMARKET"      # Scenario 3 (partial)
    PRODUCTION_PLANNING = "PRODUCTION_PLANNING"      # Scenario 4 (lot size)

    @property
    def number(self) -> int:
        return list(Scenario).index(self) + 1


def lot_quantity(lines: Iterable[tuple[str, int, int]]) -> int:
    """Units a production lot would cover; PART lines are never produced."""
    return sum(quantity for item_type, _, quantity in lines if item_type in PRODUCIBLE_TYPES)


def exceeds_lot_size(total_quantity: int, lot_size_threshold: int) -> bool:
    """Quantities at or above the threshold go straight to production planning."""
    if lot_size_threshold < 1:
        raise ValueError("Lot size threshold must be at least 1")
    return total_quantity >= lot_size_threshold


def select_scenario(availability: Sequence[bool], total_quantity: int, lot_size_threshold: int) -> Scenario:
    """Authoritative scenario used at fulfillment time.

    Full local stock always wins; the lot-size threshold only decides between
    production planning and the warehouse tier once stock is short.
    """
    large_lot = exceeds_lot_size(total_quantity, lot_size_threshold)
    if availability and all(availability):
        return Scenario.DIRECT_FULFILLMENT
    if large_lot:
        return Scenario.PRODUCTION_PLANNING
    if any(availability):
        return Scenario.MODULES_SUPERMARKET
    return Scenario.WAREHOUSE_ORDER


def predict_trigger_scenario(
    availability: Sequence[bool], total_quantity: int, lot_size_threshold: int
) -> CustomerTriggerScenario:
    """Advisory scenario recorded at confirmation time and on sibling re-evaluation."""
    large_lot = exceeds_lot_size(total_quantity, lot_size_threshold)
    if availability and all(availability):
        return CustomerTriggerScenario.DIRECT_FULFILLMENT
    if large_lot:
        return CustomerTriggerScenario.DIRECT_PRODUCTION
    return CustomerTriggerScenario.WAREHOUSE_ORDER_NEEDED
