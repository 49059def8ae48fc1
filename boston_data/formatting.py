"""Text payloads returned by the tools."""

from decimal import Decimal
from typing import Any, Iterable, List

from .schemas import Record, SummaryEntry

RECORD_SEPARATOR = "\n---\n"


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def format_record(record: Record) -> str:
    """All fields of one record as ``field: value`` lines."""
    return "\n".join(f"{key}: {_display(value)}" for key, value in record.items())


def format_records(records: Iterable[Record]) -> str:
    return RECORD_SEPARATOR.join(format_record(record) for record in records)


def format_money(amount: Decimal) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_summary(entries: List[SummaryEntry], money: bool = False) -> str:
    """Ranked ``1. key: metric`` listing, one entry per line."""
    lines = []
    for entry in entries:
        metric = format_money(entry.metric) if money else f"{int(entry.metric)}"
        lines.append(f"{entry.rank}. {entry.key}: {metric}")
    return "\n".join(lines)
