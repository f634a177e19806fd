"""ORDERFLOW — StockService: Inventory Gateway calls with fail-safe semantics.

A collaborator failure is never an indeterminate result here: a stock check
becomes "unavailable" and a debit/credit becomes "failed", and the outage is
returned as a COLLABORATOR_FAILURE audit effect on the affected order.
"""
import logging
from collections.abc import Iterable
from uuid import UUID

from orderflow.core.errors import CollaboratorFailure
from orderflow.domain.effects import Effect, audit
from orderflow.domain.ports import InventoryGateway
from orderflow.services.audit_service import EVENT_COLLABORATOR_FAILURE

logger = logging.getLogger(__name__)


class StockService:

    @staticmethod
    async def is_available(
        inventory: InventoryGateway,
        workstation_id: int,
        item_type: str,
        item_id: int,
        quantity: int,
        source_type: str,
        order_id: UUID,
    ) -> tuple[bool, list[Effect]]:
        try:
            return bool(await inventory.check_stock(workstation_id, item_id, quantity, item_type)), []
        except CollaboratorFailure as exc:
            logger.warning("Stock check for %s %s at WS-%s treated as unavailable: %s", item_type, item_id, workstation_id, exc)
            return False, [audit(source_type, order_id, EVENT_COLLABORATOR_FAILURE, str(exc))]

    @staticmethod
    async def availability(
        inventory: InventoryGateway,
        workstation_id: int,
        lines: Iterable[tuple[str, int, int]],
        source_type: str,
        order_id: UUID,
    ) -> tuple[list[bool], list[Effect]]:
        """One availability flag per (item_type, item_id, quantity) line, in input order."""
        flags: list[bool] = []
        effects: list[Effect] = []
        for item_type, item_id, quantity in lines:
            ok, fx = await StockService.is_available(
                inventory, workstation_id, item_type, item_id, quantity, source_type, order_id
            )
            flags.append(ok)
            effects.extend(fx)
        return flags, effects

    @staticmethod
    async def debit(
        inventory: InventoryGateway,
        workstation_id: int,
        item_type: str,
        item_id: int,
        quantity: int,
        source_type: str,
        order_id: UUID,
        notes: str | None = None,
    ) -> tuple[bool, list[Effect]]:
        try:
            return bool(await inventory.debit(workstation_id, item_id, quantity, item_type, notes)), []
        except CollaboratorFailure as exc:
            logger.warning("Debit of %s %s x%s at WS-%s failed: %s", item_type, item_id, quantity, workstation_id, exc)
            return False, [audit(source_type, order_id, EVENT_COLLABORATOR_FAILURE, str(exc))]

    @staticmethod
    async def credit(
        inventory: InventoryGateway,
        workstation_id: int,
        item_type: str,
        item_id: int,
        quantity: int,
        source_type: str,
        order_id: UUID,
        notes: str | None = None,
    ) -> tuple[bool, list[Effect]]:
        try:
            return bool(await inventory.credit(workstation_id, item_id, quantity, item_type, notes)), []
        except CollaboratorFailure as exc:
            logger.warning("Credit of %s %s x%s at WS-%s failed: %s", item_type, item_id, quantity, workstation_id, exc)
            return False, [audit(source_type, order_id, EVENT_COLLABORATOR_FAILURE, str(exc))]
