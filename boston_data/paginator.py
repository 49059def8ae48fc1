"""
Bulk retrieval over the datastore_search API.

Two walking policies are supported, selected per dataset:

* ``probe``: a one-row count probe learns the total, every page offset is
  computed up front and pages are fetched in batches of ``concurrency``
  parallel requests. Short pages never stop the walk.
* ``sequential``: pages are fetched one after another until a short page,
  the reported total or ``max_records`` is reached.
"""

import asyncio
import logging
from typing import List, Optional

from .portal_client import RemoteError
from .schemas import Page, PaginationPolicy, QueryDescriptor, Record

logger = logging.getLogger(__name__)


def _total(result) -> Optional[int]:
    """The envelope's ``total`` as an int, ``None`` when absent."""
    total = result.get("total")
    if total is None:
        return None
    try:
        return int(total)
    except (TypeError, ValueError) as e:
        raise RemoteError("API returned an invalid total.") from e


async def fetch_page(client, descriptor: QueryDescriptor, offset: int, limit: Optional[int] = None) -> Page:
    """Fetch one page of ``descriptor`` starting at ``offset``."""
    result = await client.datastore_search(
        descriptor.dataset_id,
        limit=limit or descriptor.page_size,
        offset=offset,
        q=descriptor.full_text_term,
        filters=descriptor.exact_filters or None,
    )
    return Page(offset=offset, records=result.get("records") or [], total=_total(result))


async def probe_total(client, descriptor: QueryDescriptor) -> int:
    """Ask for a single row to learn how many rows match ``descriptor``."""
    result = await client.datastore_search(
        descriptor.dataset_id,
        limit=1,
        offset=0,
        q=descriptor.full_text_term,
        filters=descriptor.exact_filters or None,
    )
    return _total(result) or 0


def page_offsets(total: int, page_size: int) -> List[int]:
    """Offsets of every page needed to cover ``[0, total)``."""
    return list(range(0, total, page_size))


def batched(offsets: List[int], size: int) -> List[List[int]]:
    return [offsets[i : i + size] for i in range(0, len(offsets), size)]


async def _fetch_batch(client, descriptor: QueryDescriptor, batch: List[int]) -> List[Page]:
    """Fetch one batch concurrently. If any page fails the rest are cancelled."""
    tasks = [asyncio.ensure_future(fetch_page(client, descriptor, offset)) for offset in batch]
    try:
        # gather keeps argument order, so pages land in offset order
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _fetch_all_probed(client, descriptor: QueryDescriptor) -> List[Record]:
    total = await probe_total(client, descriptor)
    if total == 0:
        logger.info("No rows match %s", descriptor.dataset_id)
        return []

    offsets = page_offsets(total, descriptor.page_size)
    batches = batched(offsets, descriptor.concurrency)
    logger.info(
        "Fetching %d rows from %s in %d pages (%d batches)",
        total,
        descriptor.dataset_id,
        len(offsets),
        len(batches),
    )

    all_records: List[Record] = []
    for number, batch in enumerate(batches, start=1):
        pages = await _fetch_batch(client, descriptor, batch)
        for page in pages:
            all_records.extend(page.records)
        logger.debug("Batch %d/%d done, %d records so far", number, len(batches), len(all_records))

    return all_records


async def _fetch_all_sequential(client, descriptor: QueryDescriptor) -> List[Record]:
    all_records: List[Record] = []
    offset = 0
    total: Optional[int] = None

    while total is None or offset < total:
        page = await fetch_page(client, descriptor, offset)
        all_records.extend(page.records)
        if page.total is not None:
            total = page.total

        if descriptor.max_records and len(all_records) >= descriptor.max_records:
            all_records = all_records[: descriptor.max_records]
            break

        # Last page
        if len(page.records) < descriptor.page_size:
            break

        offset += len(page.records)

    logger.info("Fetched %d rows from %s sequentially", len(all_records), descriptor.dataset_id)
    return all_records


async def fetch_all(client, descriptor: QueryDescriptor) -> List[Record]:
    """
    Retrieve every row matching ``descriptor``.

    Args:
        client: Anything with a ``datastore_search`` coroutine, normally a
            :class:`~boston_data.portal_client.CkanClient`.
        descriptor: What to fetch and how.

    Returns:
        Records in offset order. Empty when nothing matches.

    Raises:
        RemoteError: If the probe or any page fails. No partial result is
            returned.
    """
    if descriptor.pagination == PaginationPolicy.SEQUENTIAL:
        return await _fetch_all_sequential(client, descriptor)
    return await _fetch_all_probed(client, descriptor)
