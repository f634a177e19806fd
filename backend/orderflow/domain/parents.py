"""ORDERFLOW — Structural parent references, resolved once at creation time."""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Union


class ParentType(str, Enum):
    CUSTOMER_ORDER = "CUSTOMER_ORDER"
    WAREHOUSE_ORDER = "WAREHOUSE_ORDER"
    PRODUCTION_ORDER = "PRODUCTION_ORDER"


@dataclass(frozen=True)
class CustomerOrderParent:
    customer_order_id: uuid.UUID
    parent_type = ParentType.CUSTOMER_ORDER

    @property
    def parent_id(self) -> uuid.UUID:
        return self.customer_order_id


@dataclass(frozen=True)
class WarehouseOrderParent:
    warehouse_order_id: uuid.UUID
    parent_type = ParentType.WAREHOUSE_ORDER

    @property
    def parent_id(self) -> uuid.UUID:
        return self.warehouse_order_id


@dataclass(frozen=True)
class ProductionOrderParent:
    production_order_id: uuid.UUID
    parent_type = ParentType.PRODUCTION_ORDER

    @property
    def parent_id(self) -> uuid.UUID:
        return self.production_order_id


@dataclass(frozen=True)
class NoParent:
    parent_type = None
    parent_id = None


OrderParent = Union[CustomerOrderParent, WarehouseOrderParent, ProductionOrderParent, NoParent]

_BY_TYPE = {
    ParentType.CUSTOMER_ORDER: CustomerOrderParent,
    ParentType.WAREHOUSE_ORDER: WarehouseOrderParent,
    ParentType.PRODUCTION_ORDER: ProductionOrderParent,
}


def parent_from_columns(parent_type: str | None, parent_id: uuid.UUID | None) -> OrderParent:
    """Rebuild the tagged parent from its two persisted columns."""
    if parent_type is None or parent_id is None:
        return NoParent()
    return _BY_TYPE[ParentType(parent_type)](parent_id)


def parent_to_columns(parent: OrderParent) -> tuple[str | None, uuid.UUID | None]:
    if isinstance(parent, NoParent):
        return None, None
    return parent.parent_type.value, parent.parent_id
