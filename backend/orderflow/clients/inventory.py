"""ORDERFLOW — Inventory Gateway over the inventory service REST API."""
import logging

from orderflow.clients.base import ServiceClient
from orderflow.domain.ports import StockAdjustment
from orderflow.domain.workstations import item_type_for_workstation

logger = logging.getLogger(__name__)

REASON_ORDER_FULFILLMENT = "ORDER_FULFILLMENT"
REASON_PRODUCTION_COMPLETION = "PRODUCTION_COMPLETION"


class InventoryClient(ServiceClient):
    """Stock query, debit and credit per workstation and item."""

    name = "inventory"

    async def get_quantity(self, workstation_id: int, item_id: int, item_type: str | None = None) -> int:
        item_type = item_type or item_type_for_workstation(workstation_id).value
        body = await self._get_json(
            f"/api/stock/workstation/{workstation_id}/item",
            "get_quantity",
            params={"itemType": item_type, "itemId": item_id},
        )
        if isinstance(body, dict):
            return int(body.get("quantity") or 0)
        return int(body or 0)

    async def check_stock(self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None) -> bool:
        available = await self.get_quantity(workstation_id, item_id, item_type)
        return available >= quantity

    async def adjust(self, request: StockAdjustment) -> bool:
        await self._request(
            "POST",
            "/api/stock/adjust",
            "adjust",
            json={
                "workstationId": request.workstation_id,
                "itemType": request.item_type,
                "itemId": request.item_id,
                "delta": request.delta,
                "reason": request.reason,
                "notes": request.notes,
            },
        )
        return True

    async def debit(
        self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None, notes: str | None = None
    ) -> bool:
        return await self.adjust(
            StockAdjustment(
                workstation_id=workstation_id,
                item_type=item_type or item_type_for_workstation(workstation_id).value,
                item_id=item_id,
                delta=-quantity,
                reason=REASON_ORDER_FULFILLMENT,
                notes=notes,
            )
        )

    async def credit(
        self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None, notes: str | None = None
    ) -> bool:
        return await self.adjust(
            StockAdjustment(
                workstation_id=workstation_id,
                item_type=item_type or item_type_for_workstation(workstation_id).value,
                item_id=item_id,
                delta=quantity,
                reason=REASON_PRODUCTION_COMPLETION,
                notes=notes,
            )
        )
