"""Ranked count/sum summaries over a reconciled record set."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Union

from .schemas import Record, SummaryEntry, SummaryMetric

UNKNOWN_KEY = "UNKNOWN"

_NON_NUMERIC = re.compile(r"[^0-9.+-]")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a loosely formatted monetary value such as ``"$1,234.50"``.

    Everything except digits, signs and the decimal point is dropped. Values
    that still do not parse count as 0. Amounts are exact decimals so equal
    totals compare equal.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    text = repr(value) if isinstance(value, (int, float)) else _NON_NUMERIC.sub("", str(value))
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return Decimal(0)
    return amount if amount.is_finite() else Decimal(0)


def grouping_key(value: Any) -> str:
    key = "" if value is None else str(value).strip()
    return key or UNKNOWN_KEY


def summarize(
    records: Iterable[Record],
    field: str,
    metric: SummaryMetric = SummaryMetric.COUNT,
    top_n: int = 10,
    amount_field: Optional[str] = None,
) -> List[SummaryEntry]:
    """
    Group ``records`` by ``field`` and rank the groups.

    Args:
        records: Rows to aggregate.
        field: Grouping column. Missing or blank values group under ``UNKNOWN``.
        metric: ``COUNT`` counts rows per group, ``SUM`` adds ``amount_field``.
        top_n: Maximum number of entries returned.
        amount_field: Numeric column summed when ``metric`` is ``SUM``.

    Returns:
        Entries sorted by metric descending. Ties keep the order in which the
        keys were first seen.
    """
    if top_n < 1:
        raise ValueError("top_n must be at least 1")
    if metric == SummaryMetric.SUM and not amount_field:
        raise ValueError("amount_field is required for sum summaries")

    totals: Dict[str, Union[int, Decimal]] = {}
    for record in records:
        key = grouping_key(record.get(field))
        if metric == SummaryMetric.SUM:
            totals[key] = totals.get(key, Decimal(0)) + parse_amount(record.get(amount_field))
        else:
            totals[key] = totals.get(key, 0) + 1

    # sorted() is stable, so equal metrics stay in first-seen order
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:top_n]
    return [SummaryEntry(key=key, metric=value, rank=rank) for rank, (key, value) in enumerate(ranked, start=1)]
