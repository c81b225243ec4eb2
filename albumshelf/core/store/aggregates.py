"""
DISTINCT projection and aggregate evaluation.

Every aggregate result also carries the `style_counts` and `format_counts`
frequency tables used by the stats view.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from albumshelf.core.store.models import Record, coerce_int
from albumshelf.core.store.query import Aggregate

FREQUENCY_FIELDS: dict[str, str] = {
    "style": "style_counts",
    "format": "format_counts",
}


def distinct_values(records: Iterable[Record], field: str) -> list[Record]:
    """Unique values of `field` in first-seen order, as single-field records."""
    seen: set[Any] = set()
    result: list[Record] = []
    for record in records:
        value = record.get(field)
        if value in seen:
            continue
        seen.add(value)
        result.append({field: value})
    return result


def frequency_table(records: Iterable[Record], field: str) -> dict[str, int]:
    """
    Count comma-separated tokens of `field` across records.

    Tokens are trimmed and empty ones skipped. The result is ordered by
    descending count; equal counts keep first-seen order.
    """
    counts: dict[str, int] = {}
    for record in records:
        raw = record.get(field)
        if not raw:
            continue
        for token in str(raw).split(","):
            token = token.strip()
            if token:
                counts[token] = counts.get(token, 0) + 1
    return dict(sorted(counts.items(), key=lambda item: -item[1]))


def _evaluate(records: Sequence[Record], agg: Aggregate) -> int:
    if agg.func == "count":
        if agg.field is None:
            return len(records)
        return sum(1 for r in records if r.get(agg.field) is not None)
    if agg.func == "sum":
        return sum(coerce_int(r.get(agg.field or "")) or 0 for r in records)
    if agg.func == "count_distinct":
        return len({r.get(agg.field or "") for r in records} - {None})
    raise ValueError(f"Unknown aggregate function: {agg.func}")


def aggregate(records: Iterable[Record], aggregates: Sequence[Aggregate]) -> Record:
    """Evaluate `aggregates` over `records` into a single result row."""
    rows = list(records)
    result: Record = {agg.alias: _evaluate(rows, agg) for agg in aggregates}
    for field, key in FREQUENCY_FIELDS.items():
        result[key] = frequency_table(rows, field)
    return result
