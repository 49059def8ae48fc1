"""
Tests for the bounded-concurrency paginator.
"""

import asyncio

import httpx
import pytest

from boston_data.paginator import batched, fetch_all, page_offsets
from boston_data.portal_client import RemoteError
from boston_data.schemas import PaginationPolicy, QueryDescriptor


def _rows(n, **extra):
    return [{"_id": i + 1, **extra} for i in range(n)]


class CountingClient:
    """Fake datastore client that records how many requests overlap."""

    def __init__(self, total: int):
        self.total = total
        self.in_flight = 0
        self.max_in_flight = 0
        self.page_offsets = []

    async def datastore_search(self, resource_id, limit, offset=0, q=None, filters=None):
        if limit == 1:
            return {"records": [{"_id": 1}], "total": self.total}

        self.page_offsets.append(offset)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        # Later offsets finish first
        await asyncio.sleep(0.001 * (self.total - offset) / limit)
        self.in_flight -= 1
        end = min(offset + limit, self.total)
        return {"records": [{"_id": i} for i in range(offset, end)], "total": self.total}


def test_page_offsets():
    assert page_offsets(0, 100) == []
    assert page_offsets(1, 100) == [0]
    assert page_offsets(100, 100) == [0]
    assert page_offsets(150, 100) == [0, 100]
    assert page_offsets(1000, 100) == [0, 100, 200, 300, 400, 500, 600, 700, 800, 900]


def test_batched():
    assert batched([0, 100, 200], 7) == [[0, 100, 200]]
    assert batched(list(range(10)), 7) == [[0, 1, 2, 3, 4, 5, 6], [7, 8, 9]]
    assert batched([], 7) == []


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_cap():
    client = CountingClient(total=1000)
    descriptor = QueryDescriptor(dataset_id="res", page_size=100, concurrency=7)

    records = await fetch_all(client, descriptor)

    assert client.max_in_flight == 7
    assert len(client.page_offsets) == 10
    # Second batch only starts after the whole first batch is done
    assert sorted(client.page_offsets[:7]) == [0, 100, 200, 300, 400, 500, 600]
    assert sorted(client.page_offsets[7:]) == [700, 800, 900]
    # Offset order, not completion order
    assert [r["_id"] for r in records] == list(range(1000))


@pytest.mark.asyncio
async def test_pagination_completeness(datastore):
    store = datastore(_rows(250))
    descriptor = QueryDescriptor(dataset_id="res", page_size=100, concurrency=7)

    async with store.client() as client:
        records = await fetch_all(client, descriptor)

    assert len(store.page_requests) == 3
    assert [r["offset"] for r in store.page_requests] == [0, 100, 200]
    assert len(records) == 250
    # Count probe first
    assert store.requests[0]["limit"] == 1
    assert store.requests[0]["offset"] == 0


@pytest.mark.asyncio
async def test_probe_forwards_query_and_filters(datastore):
    store = datastore(_rows(5, zip="02116") + _rows(3, zip="02118"))
    descriptor = QueryDescriptor(dataset_id="res", full_text_term="pizza", exact_filters={"zip": "02116"})

    async with store.client() as client:
        records = await fetch_all(client, descriptor)

    assert len(records) == 5
    assert all(r["q"] == "pizza" for r in store.requests)
    assert all(r["filters"] == {"zip": "02116"} for r in store.requests)


@pytest.mark.asyncio
async def test_zero_total_stops_after_probe(datastore):
    store = datastore([])
    async with store.client() as client:
        records = await fetch_all(client, QueryDescriptor(dataset_id="res"))

    assert records == []
    assert len(store.requests) == 1


@pytest.mark.asyncio
async def test_failed_probe_raises_and_stops(datastore):
    store = datastore(_rows(500))
    store.success = False

    async with store.client() as client:
        with pytest.raises(RemoteError, match="unsuccessful"):
            await fetch_all(client, QueryDescriptor(dataset_id="res"))

    assert len(store.requests) == 1


@pytest.mark.asyncio
async def test_failed_page_discards_everything(datastore):
    store = datastore(_rows(500))
    store.fail_at_offset = 300

    async with store.client() as client:
        with pytest.raises(RemoteError) as excinfo:
            await fetch_all(client, QueryDescriptor(dataset_id="res"))

    assert excinfo.value.status == 500


@pytest.mark.asyncio
async def test_short_page_does_not_stop_probed_walk(datastore):
    """Offsets come from the probe total, not from page lengths."""
    store = datastore(_rows(300))
    original = store.handler

    def shrinking(request):
        response = original(request)
        if request.url.params["offset"] == "100":
            body = response.json()
            body["result"]["records"] = body["result"]["records"][:10]
            return httpx.Response(200, json=body)
        return response

    store.handler = shrinking
    async with store.client() as client:
        records = await fetch_all(client, QueryDescriptor(dataset_id="res"))

    assert [r["offset"] for r in store.page_requests] == [0, 100, 200]
    assert len(records) == 210


@pytest.mark.asyncio
async def test_sequential_stops_on_short_page_without_total(datastore):
    store = datastore(_rows(250), report_total=False)
    descriptor = QueryDescriptor(dataset_id="res", pagination=PaginationPolicy.SEQUENTIAL)

    async with store.client() as client:
        records = await fetch_all(client, descriptor)

    assert len(records) == 250
    assert [r["offset"] for r in store.requests] == [0, 100, 200]
    # No count probe
    assert all(r["limit"] == 100 for r in store.requests)


@pytest.mark.asyncio
async def test_sequential_stops_at_reported_total(datastore):
    store = datastore(_rows(200))
    descriptor = QueryDescriptor(dataset_id="res", pagination=PaginationPolicy.SEQUENTIAL)

    async with store.client() as client:
        records = await fetch_all(client, descriptor)

    assert len(records) == 200
    assert [r["offset"] for r in store.requests] == [0, 100]


@pytest.mark.asyncio
async def test_sequential_respects_max_records(datastore):
    store = datastore(_rows(1000))
    descriptor = QueryDescriptor(dataset_id="res", pagination=PaginationPolicy.SEQUENTIAL, max_records=150)

    async with store.client() as client:
        records = await fetch_all(client, descriptor)

    assert len(records) == 150
    assert len(store.requests) == 2


class BadTotalClient:
    async def datastore_search(self, resource_id, limit, offset=0, q=None, filters=None):
        return {"records": [{"_id": 1}], "total": "lots"}


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", [PaginationPolicy.PROBE, PaginationPolicy.SEQUENTIAL])
async def test_non_numeric_total_is_remote_error(policy):
    descriptor = QueryDescriptor(dataset_id="res", pagination=policy)

    with pytest.raises(RemoteError, match="invalid total"):
        await fetch_all(BadTotalClient(), descriptor)


class FailingPageClient:
    """One page fails right away while its batch siblings are still in flight."""

    def __init__(self, total: int, failing_offset: int):
        self.total = total
        self.failing_offset = failing_offset
        self.finished = []

    async def datastore_search(self, resource_id, limit, offset=0, q=None, filters=None):
        if limit == 1:
            return {"records": [], "total": self.total}
        if offset == self.failing_offset:
            await asyncio.sleep(0)
            raise RemoteError("API Error: 500", status=500)
        await asyncio.sleep(0.05)
        self.finished.append(offset)
        return {"records": [{"_id": offset}], "total": self.total}


@pytest.mark.asyncio
async def test_failed_page_cancels_rest_of_batch():
    client = FailingPageClient(total=700, failing_offset=300)

    with pytest.raises(RemoteError):
        await fetch_all(client, QueryDescriptor(dataset_id="res", page_size=100, concurrency=7))

    await asyncio.sleep(0.1)
    assert client.finished == []
