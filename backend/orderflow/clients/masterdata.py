"""ORDERFLOW — BOM Resolver over the master-data service, with a Redis cache-aside layer."""
import json
import logging
from typing import Any

import httpx
import redis.asyncio as redis

from orderflow.clients.base import ServiceClient
from orderflow.core.errors import CollaboratorFailure
from orderflow.core.redis import bom_cache_key, item_cache_key
from orderflow.domain.bom import scale_bom

logger = logging.getLogger(__name__)

_COLLECTIONS = {"PRODUCT": "products", "MODULE": "modules", "PART": "parts"}


class MasterdataClient(ServiceClient):
    """Product -> module and module -> part requirement lookups."""

    name = "masterdata"

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: redis.Redis | None = None,
        cache_ttl: int = 300,
    ):
        super().__init__(base_url, timeout, transport)
        self.cache = cache
        self.cache_ttl = cache_ttl

    # ── cache-aside ──────────────────────────────────────────────────────────

    async def _cached(self, key: str, path: str, operation: str) -> Any:
        if self.cache is not None:
            try:
                hit = await self.cache.get(key)
                if hit is not None:
                    return json.loads(hit)
            except redis.RedisError as exc:
                logger.warning("Master-data cache read failed for %s: %s", key, exc)

        body = await self._get_json(path, operation)

        if self.cache is not None:
            try:
                await self.cache.set(key, json.dumps(body), ex=self.cache_ttl)
            except redis.RedisError as exc:
                logger.warning("Master-data cache write failed for %s: %s", key, exc)
        return body

    # ── BOM ──────────────────────────────────────────────────────────────────

    @staticmethod
    def _entries(body: Any, *id_fields: str) -> list[tuple[int, int]]:
        entries = []
        for raw in body or []:
            component_id = next((raw[f] for f in id_fields if raw.get(f) is not None), None)
            if component_id is None:
                continue
            entries.append((int(component_id), int(raw.get("quantity") or 1)))
        return entries

    async def explode_product(self, product_id: int, quantity: int) -> dict[int, int]:
        body = await self._cached(
            bom_cache_key("PRODUCT", product_id),
            f"/api/masterdata/products/{product_id}/modules",
            "explode_product",
        )
        return scale_bom(self._entries(body, "moduleId", "componentId"), quantity)

    async def explode_module(self, module_id: int, quantity: int) -> dict[int, int]:
        body = await self._cached(
            bom_cache_key("MODULE", module_id),
            f"/api/masterdata/modules/{module_id}/parts",
            "explode_module",
        )
        return scale_bom(self._entries(body, "partId", "componentId"), quantity)

    # ── Item details ─────────────────────────────────────────────────────────

    async def _item(self, item_type: str, item_id: int) -> dict:
        collection = _COLLECTIONS.get(item_type.upper())
        if collection is None:
            raise ValueError(f"Unknown item type: {item_type}")
        body = await self._cached(
            item_cache_key(item_type, item_id),
            f"/api/masterdata/{collection}/{item_id}",
            f"get_{item_type.lower()}",
        )
        return body if isinstance(body, dict) else {}

    async def lookup_name(self, item_type: str, item_id: int) -> str:
        fallback = f"{item_type.upper()} #{item_id}"
        try:
            item = await self._item(item_type, item_id)
        except (CollaboratorFailure, ValueError) as exc:
            logger.warning("Name lookup for %s failed, using fallback: %s", fallback, exc)
            return fallback
        return item.get("name") or fallback

    async def production_workstation(self, module_id: int) -> int | None:
        item = await self._item("MODULE", module_id)
        workstation_id = item.get("productionWorkstationId")
        return int(workstation_id) if workstation_id is not None else None
