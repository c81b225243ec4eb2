"""
WHERE-clause evaluation.

Predicates come from `albumshelf.core.store.query` and are applied
conjunctively. Numeric fields compare as integers so that ids and flags
match whether they were bound as ints or as strings ("5", "1").
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from albumshelf.core.store.models import INTEGER_FIELDS, Record, coerce_int
from albumshelf.core.store.query import AnyOf, Compare, Constant, Like, Predicate


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def like_term(value: Any) -> str:
    """Search term of a LIKE parameter: wildcards removed, lowercased."""
    return _text(value).replace("%", "").lower()


def _matches_like(record: Record, pred: Like, params: Sequence[Any]) -> bool:
    term = like_term(pred.operand.bind(params))
    if not term:
        return True
    return term in _text(record.get(pred.field)).lower()


def _matches_compare(record: Record, pred: Compare, params: Sequence[Any]) -> bool:
    bound = pred.operand.bind(params)

    # A NULL operand excludes nothing (e.g. `id != ?` bound to None).
    if pred.op == "!=" and (bound is None or (pred.field == "id" and not bound)):
        return True
    # Nothing equals NULL.
    if pred.op == "=" and bound is None:
        return False

    left: Any
    right: Any
    if pred.fold_case:
        left = _text(record.get(pred.field)).lower()
        right = _text(bound).lower()
    elif pred.field in INTEGER_FIELDS:
        left = coerce_int(record.get(pred.field))
        right = coerce_int(bound)
        if pred.op == "=" and (left is None or right is None):
            return False
    else:
        left = _text(record.get(pred.field))
        right = _text(bound)

    return left == right if pred.op == "=" else left != right


def matches(record: Record, predicate: Predicate, params: Sequence[Any]) -> bool:
    if isinstance(predicate, Compare):
        return _matches_compare(record, predicate, params)
    if isinstance(predicate, Like):
        return _matches_like(record, predicate, params)
    if isinstance(predicate, AnyOf):
        return any(_matches_like(record, term, params) for term in predicate.terms)
    if isinstance(predicate, Constant):
        return predicate.value
    raise TypeError(f"Unknown predicate: {predicate!r}")


def filter_records(
    records: Iterable[Record],
    where: Sequence[Predicate],
    params: Sequence[Any],
) -> list[Record]:
    """Return the records satisfying every predicate in `where`, in order."""
    if not where:
        return list(records)
    return [r for r in records if all(matches(r, p, params) for p in where)]
