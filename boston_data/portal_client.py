import json
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """The datastore answered with a non-success status or ``success: false``."""

    def __init__(self, reason: str, status: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.status = status


class CkanClient:
    """Thin async wrapper around the CKAN ``datastore_search`` action."""

    SEARCH_PATH = "/api/3/action/datastore_search"

    def __init__(self, host: str, timeout: float = 30, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.host = host.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.host,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "CkanClient":
        return cls(settings.host, timeout=settings.request_timeout, transport=transport)

    async def datastore_search(
        self,
        resource_id: str,
        limit: int,
        offset: int = 0,
        q: Optional[str] = None,
        filters: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Run one datastore query and return the ``result`` part of the envelope.

        Raises:
            RemoteError: non-2xx status, ``success: false``, an unreadable body
                or a transport failure.
        """
        params: Dict[str, Any] = {
            "resource_id": resource_id,
            "limit": limit,
            "offset": offset,
        }
        if q:
            params["q"] = q
        if filters:
            params["filters"] = json.dumps(filters)

        try:
            r = await self._client.get(self.SEARCH_PATH, params=params)
        except httpx.RequestError as e:
            raise RemoteError(f"Request failed: {e}") from e

        if not r.is_success:
            raise RemoteError(f"API Error: {r.status_code}", status=r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            raise RemoteError("API returned a non-JSON response.", status=r.status_code) from e

        if not data.get("success"):
            raise RemoteError("API call unsuccessful.", status=r.status_code)

        result = data.get("result") or {}
        logger.debug(
            "datastore_search resource=%s offset=%s limit=%s -> %s records",
            resource_id,
            offset,
            limit,
            len(result.get("records") or []),
        )
        return result

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "CkanClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
