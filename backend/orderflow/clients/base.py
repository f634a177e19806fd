"""ORDERFLOW — Shared httpx plumbing for collaborator clients."""
import logging
from typing import Any

import httpx

from orderflow.core.errors import CollaboratorFailure

logger = logging.getLogger(__name__)


class ServiceClient:
    """Thin JSON-over-HTTP client with a bounded timeout.

    Transport errors, timeouts and non-2xx replies surface as CollaboratorFailure.
    """

    name = "service"

    def __init__(self, base_url: str, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _request(self, method: str, path: str, operation: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.TimeoutException as exc:
            logger.warning("%s.%s timed out after %.1fs", self.name, operation, self.timeout)
            raise CollaboratorFailure(self.name, operation, f"timeout: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning("%s.%s returned HTTP %s", self.name, operation, exc.response.status_code)
            raise CollaboratorFailure(self.name, operation, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s.%s failed: %s", self.name, operation, exc)
            raise CollaboratorFailure(self.name, operation, str(exc)) from exc

    async def _get_json(self, path: str, operation: str, **kwargs: Any) -> Any:
        response = await self._request("GET", path, operation, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise CollaboratorFailure(self.name, operation, "invalid JSON body") from exc
