"""
ORDER BY helpers for the record store.

These helpers centralize the translation from the parsed ORDER BY keys into a
comparator over records, including the artist sort key, so the logic doesn't
get duplicated across executors.

Important:
- Only the fields in `OrderableField` are sortable. The parser rejects
  anything else before it gets here.
- `artist_sort_key` is a behavioural contract: other code (and stored user
  expectations) depend on its exact output, misclassifications included.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, Literal, Sequence

from albumshelf.core.store.models import Record, coerce_int

OrderableField = Literal[
    "artist_name",
    "release_year",
    "album_name",
    "id",
    "created_date",
    "updated_date",
]

ORDERABLE_FIELDS: frozenset[str] = frozenset(
    {"artist_name", "release_year", "album_name", "id", "created_date", "updated_date"}
)

LEADING_ARTICLES: tuple[str, ...] = ("the ", "a ", "an ")

# Two-word band names that must not be read as "First Last".
KNOWN_BAND_NAMES: frozenset[str] = frozenset(
    {
        "pink floyd",
        "led zeppelin",
        "daft punk",
        "black sabbath",
        "deep purple",
        "iron maiden",
        "judas priest",
        "motorhead",
        "queen",
        "kiss",
        "rush",
        "yes",
        "genesis",
        "rolling stones",
        "who",
        "doors",
        "cream",
        "zeppelin",
    }
)

COMMON_FIRST_NAMES: frozenset[str] = frozenset(
    {
        "john", "james", "michael", "david", "robert", "william", "richard",
        "joseph", "thomas", "christopher", "charles", "daniel", "matthew",
        "anthony", "mark", "donald", "steven", "paul", "andrew", "joshua",
        "kenneth", "kevin", "brian", "george", "timothy", "ronald", "jason",
        "edward", "jeffrey", "ryan", "jacob", "gary", "nicholas", "eric",
        "stephen", "jonathan", "larry", "justin", "scott", "brandon",
        "benjamin", "frank", "samuel", "gregory", "raymond", "alexander",
        "patrick", "jack", "dennis", "jerry", "tyler", "aaron", "jose",
        "henry", "douglas", "adam", "peter", "nathan", "zachary", "walter",
        "kyle", "harold", "carl", "jeremy", "keith", "roger", "gavin",
        "terrence", "sean", "christian", "kurt", "bob", "miles",
    }
)  # fmt: skip

# Characters trimmed from artist names (space, tab, newlines, NUL, vertical tab).
_TRIM_CHARS = " \t\n\r\0\x0b"


def _starts_with_capital(word: str) -> bool:
    return bool(word) and "A" <= word[0] <= "Z"


def artist_sort_key(text: str | None) -> str:
    """
    Return the string used to order an artist name.

    - "The Beatles" -> "Beatles" (leading article stripped)
    - "Aaron Dilloway" -> "Dilloway, Aaron" (known given name, surname first)
    - "Pink Floyd" -> "Pink Floyd" (known band name)
    - anything else is returned trimmed
    """
    text = (text or "").strip(_TRIM_CHARS)

    lowered = text.lower()
    for article in LEADING_ARTICLES:
        if lowered.startswith(article):
            return text[len(article) :].strip(_TRIM_CHARS)

    words = text.split(" ")
    if len(words) == 2:
        first_name, last_name = words
        if _starts_with_capital(first_name) and _starts_with_capital(last_name):
            if lowered in KNOWN_BAND_NAMES:
                return text
            if first_name.lower() in COMMON_FIRST_NAMES:
                return f"{last_name}, {first_name}"

    return text


def _ordinal(a: str, b: str) -> int:
    return (a > b) - (a < b)


def _text(value: object) -> str:
    return "" if value is None else str(value)


def compare_field(field: str, a: Record, b: Record) -> int:
    """Three-way comparison of two records on a single orderable field."""
    if field == "artist_name":
        return _ordinal(
            artist_sort_key(_text(a.get("artist_name"))),
            artist_sort_key(_text(b.get("artist_name"))),
        )
    if field in ("release_year", "id"):
        # Missing/falsy years sort as 0, i.e. before any real year.
        left = coerce_int(a.get(field)) or 0
        right = coerce_int(b.get(field)) or 0
        return (left > right) - (left < right)
    return _ordinal(_text(a.get(field)), _text(b.get(field)))


def sort_records(
    records: Iterable[Record],
    order: Sequence[tuple[str, bool]],
) -> list[Record]:
    """
    Stable sort of `records` by `order`, a sequence of (field, descending).

    An empty `order` keeps insertion order.
    """
    items = list(records)
    if not order:
        return items

    def compare(a: Record, b: Record) -> int:
        for field, descending in order:
            result = compare_field(field, a, b)
            if result:
                return -result if descending else result
        return 0

    return sorted(items, key=cmp_to_key(compare))
