"""ORDERFLOW — Shared redis.asyncio connection for the master-data cache."""
import logging

import redis.asyncio as redis

from orderflow.config import get_settings

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Lazily connect to the cache database; the connection is shared by every request."""
    global _client
    if _client is None:
        _client = redis.from_url(get_settings().REDIS_URL, decode_responses=True)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        try:
            await _client.aclose()
        except redis.RedisError as exc:
            logger.warning("Closing the Redis cache connection failed: %s", exc)
        _client = None


def bom_cache_key(parent_type: str, parent_id: int) -> str:
    """bom:<product|module>:<id> holds the raw BOM entries of one parent."""
    return f"bom:{parent_type.lower()}:{parent_id}"


def item_cache_key(item_type: str, item_id: int) -> str:
    """item:<type>:<id> holds name and production workstation of one item."""
    return f"item:{item_type.lower()}:{item_id}"
