"""PrestaShop webservice connector.

Thin authenticated wrapper around the shop's /api endpoints.

Auth: HTTP Basic, username = the boutique's webservice key, empty password.
Format: every call asks for output_format=JSON.
Errors: timeouts, transport failures, non-2xx answers and malformed JSON
all surface as RemoteApiError. No retry here — collectors decide whether
a failure is expected (existence probes), best-effort (enrichment) or fatal.

Called by: services/stock_collector.py, services/order_collector.py,
           services/order_id_discovery.py, services/collector.py
Depends on: httpx, http_client.py
"""

import logging
from typing import Any

import httpx

from ..config import settings

log = logging.getLogger(__name__)


class RemoteApiError(Exception):
    """Any failure talking to a PrestaShop webservice."""

    def __init__(self, url: str, cause: Exception | str, status_code: int | None = None):
        self.url = url
        self.cause = cause
        self.status_code = status_code
        detail = f"HTTP {status_code}" if status_code else type(cause).__name__
        super().__init__(f"{url}: {detail}: {cause}")


class PrestaShopClient:
    """One boutique's webservice. Cheap to build; shares the pooled AsyncClient."""

    def __init__(self, base_url: str, api_key: str, http: httpx.AsyncClient | None = None):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        if http is None:
            from ..http_client import http as shared_http

            http = shared_http
        self._http = http

    @classmethod
    def for_boutique(cls, boutique, http: httpx.AsyncClient | None = None) -> "PrestaShopClient":
        return cls(boutique.base_url, boutique.api_key, http=http)

    def url(self, path: str) -> str:
        return f"{self.base_url}/api/{path.lstrip('/')}"

    async def get(
        self,
        path: str,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> Any:
        """GET /api/{path} and return the parsed JSON body."""
        url = self.url(path)
        query = {"output_format": "JSON"}
        if params:
            query.update(params)

        try:
            r = await self._http.get(
                url,
                params=query,
                auth=(self.api_key, ""),
                timeout=timeout or settings.prestashop_listing_timeout,
            )
        except httpx.HTTPError as e:
            raise RemoteApiError(url, e) from e

        if not r.is_success:
            raise RemoteApiError(url, r.text[:200], status_code=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise RemoteApiError(url, e, status_code=r.status_code) from e

    async def get_optional(
        self,
        path: str,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> Any | None:
        """Best-effort GET: the parsed body, or None when the call fails."""
        try:
            return await self.get(path, params=params, timeout=timeout)
        except RemoteApiError as e:
            log.debug(f"PrestaShop best-effort fetch failed: {e}")
            return None

    async def exists(self, path: str, timeout: float | None = None) -> bool:
        """Existence probe: True when the resource answers 2xx with JSON."""
        try:
            await self.get(path, timeout=timeout or settings.prestashop_probe_timeout)
        except RemoteApiError:
            return False
        return True
