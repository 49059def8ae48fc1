"""Local re-filtering of over-inclusive full-text search results."""

from typing import Iterable, List, Sequence

from .normalize import normalize_address
from .schemas import MatchMode, Record


def record_location(record: Record, fields: Sequence[str]) -> str:
    """First non-empty value among ``fields``; missing fields read as ``""``."""
    for field in fields:
        value = record.get(field)
        if value:
            return str(value)
    return ""


def addresses_match(candidate: str, query: str, mode: MatchMode) -> bool:
    """Compare two already-normalized addresses under ``mode``."""
    if candidate == query:
        return True
    if mode == MatchMode.BIDIRECTIONAL:
        return query in candidate or candidate in query
    return False


def reconcile(
    records: Iterable[Record],
    query_address: str,
    mode: MatchMode,
    fields: Sequence[str] = ("address",),
) -> List[Record]:
    """
    Keep the records whose location matches ``query_address``.

    Args:
        records: Rows returned by the datastore full-text search.
        query_address: Address supplied by the caller, unnormalized.
        mode: ``BIDIRECTIONAL`` accepts equality or containment either way,
            ``EXACT`` only equality after normalization.
        fields: Record fields to read the location from, in fallback order.

    Returns:
        The matching records in their original order. May be empty.
    """
    wanted = normalize_address(query_address)
    return [
        record
        for record in records
        if addresses_match(normalize_address(record_location(record, fields)), wanted, mode)
    ]
