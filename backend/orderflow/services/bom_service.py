"""ORDERFLOW — BOMService: explode demands through the BOM Resolver and aggregate."""
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from orderflow.core.errors import CollaboratorFailure, ValidationCollector, ValidationFailure
from orderflow.domain.effects import Effect, audit
from orderflow.domain.ports import BomResolver
from orderflow.domain.workstations import ItemType
from orderflow.services.audit_service import EVENT_COLLABORATOR_FAILURE

logger = logging.getLogger(__name__)


@dataclass
class ComponentDemand:
    """Aggregated demand for one component.

    ``products`` maps each product that needs the component to the component
    units exploded for it; components ordered directly have no entry.
    """

    item_type: str
    item_id: int
    quantity: int
    products: dict[int, int] = field(default_factory=dict)


class BOMService:
    """Explosion and aggregation of product/module demands.

    The caller always receives duplicate-free demands: quantities for the same
    component are summed across every top-level item.
    """

    @staticmethod
    def _accumulate(
        aggregated: dict[tuple[str, int], ComponentDemand],
        item_type: str,
        item_id: int,
        quantity: int,
        product_id: int | None = None,
    ) -> None:
        key = (item_type, item_id)
        demand = aggregated.setdefault(key, ComponentDemand(item_type, item_id, 0))
        demand.quantity += quantity
        if product_id is not None:
            demand.products[product_id] = demand.products.get(product_id, 0) + quantity

    @staticmethod
    def product_units(items: Iterable[tuple[str, int, int]]) -> dict[int, int]:
        """Product id -> units ordered, summed over the PRODUCT lines."""
        units: dict[int, int] = {}
        for item_type, item_id, quantity in items:
            if item_type == ItemType.PRODUCT.value and quantity > 0:
                units[item_id] = units.get(item_id, 0) + quantity
        return units

    @staticmethod
    async def explode_products(
        resolver: BomResolver,
        items: Iterable[tuple[str, int, int]],
        source_type: str,
        order_id: UUID,
    ) -> list[ComponentDemand]:
        """
        Product demand -> aggregated module demand.
        Non-PRODUCT items pass through unchanged. An empty or failed explosion is
        a validation failure; every offending product is reported.
        """
        errors = ValidationCollector()
        effects: list[Effect] = []
        aggregated: dict[tuple[str, int], ComponentDemand] = {}

        for item_type, item_id, quantity in items:
            if quantity <= 0:
                continue
            if item_type != ItemType.PRODUCT.value:
                BOMService._accumulate(aggregated, item_type, item_id, quantity)
                continue
            try:
                modules = await resolver.explode_product(item_id, quantity)
            except CollaboratorFailure as exc:
                logger.warning("BOM lookup for product %s failed: %s", item_id, exc)
                effects.append(audit(source_type, order_id, EVENT_COLLABORATOR_FAILURE, str(exc)))
                modules = {}
            if not modules:
                errors.add(f"No modules found in BOM for product {item_id}")
                continue
            for module_id, module_qty in modules.items():
                BOMService._accumulate(aggregated, ItemType.MODULE.value, module_id, module_qty, product_id=item_id)

        if errors.errors:
            raise ValidationFailure(errors.errors).with_effects(effects)
        return list(aggregated.values())

    @staticmethod
    async def explode_module(
        resolver: BomResolver,
        module_id: int,
        quantity: int,
        source_type: str,
        order_id: UUID,
    ) -> tuple[dict[int, int], list[Effect]]:
        """Module demand -> part demand. Returns ({} , [failure audit]) when the resolver is down."""
        try:
            parts = await resolver.explode_module(module_id, quantity)
        except CollaboratorFailure as exc:
            logger.warning("BOM lookup for module %s failed: %s", module_id, exc)
            return {}, [audit(source_type, order_id, EVENT_COLLABORATOR_FAILURE, str(exc))]
        return dict(parts or {}), []

    @staticmethod
    async def lookup_name(resolver: BomResolver, item_type: str, item_id: int) -> str:
        try:
            return await resolver.lookup_name(item_type, item_id)
        except CollaboratorFailure:
            return f"{item_type} #{item_id}"
