"""
Record model for the album store.

This module is intentionally lightweight:
- No file or lock knowledge
- No query parsing
- Field tables, the `Collection` container and value coercion helpers

Records are plain dicts keyed by the JSON field names so that the on-disk
document round-trips without a translation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

Record = dict[str, Any]

# Mutable fields in canonical order. Statements without a column list bind
# their parameters positionally against this tuple.
MUTABLE_FIELDS: tuple[str, ...] = (
    "artist_name",
    "album_name",
    "release_year",
    "is_owned",
    "want_to_own",
    "cover_url",
    "discogs_release_id",
    "style",
    "format",
    "artist_type",
    "label",
    "producer",
)

TIMESTAMP_FIELDS: tuple[str, ...] = ("created_date", "updated_date")

ALBUM_FIELDS: tuple[str, ...] = ("id", *MUTABLE_FIELDS, *TIMESTAMP_FIELDS)

# Fields compared as integers by filters and ordering.
INTEGER_FIELDS: frozenset[str] = frozenset({"id", "release_year", "is_owned", "want_to_own"})

FLAG_FIELDS: frozenset[str] = frozenset({"is_owned", "want_to_own"})

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


@dataclass(slots=True)
class Collection:
    """
    The whole dataset: albums in insertion order plus the id counter.

    `next_id` is always strictly greater than any id ever assigned. Ids are
    never recycled, even after deletes.
    """

    albums: list[Record] = field(default_factory=list)
    next_id: int = 1

    def allocate_id(self) -> int:
        album_id = self.next_id
        self.next_id += 1
        return album_id

    def find(self, album_id: int) -> Record | None:
        for album in self.albums:
            if coerce_int(album.get("id")) == album_id:
                return album
        return None

    def max_id(self) -> int:
        ids = [coerce_int(a.get("id")) or 0 for a in self.albums]
        return max(ids, default=0)

    def to_document(self) -> dict[str, Any]:
        return {"albums": self.albums, "next_id": self.next_id}


def coerce_int(value: Any) -> int | None:
    """
    Best-effort integer coercion for untyped parameters.

    Returns None for None and for values that are not integers in disguise
    (e.g. "abc", "1.5").
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def coerce_year(value: Any) -> int | None:
    """Falsy years (None, 0, "") are stored as null."""
    if not value:
        return None
    year = coerce_int(value)
    return year if year else None


def coerce_flag(value: Any) -> int:
    """Boolean-coded fields are stored as 0/1."""
    if isinstance(value, str):
        return 0 if value.strip().lower() in _FALSE_STRINGS else 1
    return 1 if value else 0


def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def coerce_field(name: str, value: Any) -> Any:
    """Coerce a bound parameter to the stored representation of `name`."""
    if name == "release_year":
        return coerce_year(value)
    if name in FLAG_FIELDS:
        return coerce_flag(value)
    return coerce_text(value)


def timestamp(now: datetime) -> str:
    return now.strftime(TIMESTAMP_FORMAT)


def new_record(album_id: int, values: dict[str, Any], now: datetime) -> Record:
    """Build a full record with every field present, in canonical key order."""
    stamp = timestamp(now)
    record: Record = {"id": album_id}
    for name in MUTABLE_FIELDS:
        record[name] = coerce_field(name, values.get(name))
    record["created_date"] = stamp
    record["updated_date"] = stamp
    return record
