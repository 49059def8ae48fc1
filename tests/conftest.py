"""
Shared fixtures: an in-memory CKAN datastore served through httpx.MockTransport.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from boston_data.portal_client import CkanClient


class FakeDatastore:
    """
    Answers datastore_search requests from a fixed list of rows.

    ``q`` is recorded but not applied, like an over-inclusive full-text search.
    ``filters`` are applied as exact matches.
    """

    def __init__(self, rows: List[Dict[str, Any]], report_total: bool = True):
        self.rows = rows
        self.report_total = report_total
        self.requests: List[Dict[str, Any]] = []
        self.status_code = 200
        self.success = True
        self.fail_at_offset: Optional[int] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        limit = int(params["limit"])
        offset = int(params.get("offset", 0))
        filters = json.loads(params["filters"]) if "filters" in params else {}
        self.requests.append(
            {
                "resource_id": params["resource_id"],
                "q": params.get("q"),
                "filters": filters,
                "limit": limit,
                "offset": offset,
            }
        )

        if self.status_code != 200 or offset == self.fail_at_offset:
            return httpx.Response(self.status_code if self.status_code != 200 else 500, json={"success": False})
        if not self.success:
            return httpx.Response(200, json={"success": False, "error": {"message": "boom"}})

        matching = [row for row in self.rows if all(str(row.get(k)) == v for k, v in filters.items())]
        result: Dict[str, Any] = {"records": matching[offset : offset + limit]}
        if self.report_total:
            result["total"] = len(matching)
        return httpx.Response(200, json={"success": True, "result": result})

    def client(self) -> CkanClient:
        return CkanClient("https://data.example.org", transport=httpx.MockTransport(self.handler))

    @property
    def page_requests(self) -> List[Dict[str, Any]]:
        """Requests other than the one-row count probe."""
        return [r for r in self.requests if r["limit"] != 1]


@pytest.fixture
def datastore():
    def make(rows, **kwargs) -> FakeDatastore:
        return FakeDatastore(rows, **kwargs)

    return make
