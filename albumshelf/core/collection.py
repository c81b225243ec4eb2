from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from albumshelf.core import CoreError, NotFoundError
from albumshelf.core.record_store import RecordStore
from albumshelf.core.store.models import MUTABLE_FIELDS, Record, coerce_int

logger = logging.getLogger(__name__)

TABLE = "music_collection"

_COLUMNS = ", ".join(MUTABLE_FIELDS)
_PLACEHOLDERS = ", ".join("?" for _ in MUTABLE_FIELDS)
_ASSIGNMENTS = ", ".join(f"{name} = ?" for name in MUTABLE_FIELDS)

SQL_INSERT = f"INSERT INTO {TABLE} ({_COLUMNS}) VALUES ({_PLACEHOLDERS})"
SQL_UPDATE = f"UPDATE {TABLE} SET {_ASSIGNMENTS} WHERE id = ?"
SQL_DELETE = f"DELETE FROM {TABLE} WHERE id = ?"
SQL_BY_ID = f"SELECT * FROM {TABLE} WHERE id = ?"
SQL_EXISTS = (
    f"SELECT id FROM {TABLE} "
    "WHERE LOWER(artist_name) = LOWER(?) AND LOWER(album_name) = LOWER(?)"
)
SQL_STATS = (
    "SELECT COUNT(*) AS total_albums, "
    "SUM(is_owned) AS owned_count, "
    "SUM(want_to_own) AS wanted_count, "
    "COUNT(DISTINCT artist_name) AS unique_artists "
    f"FROM {TABLE}"
)
LIST_ORDER = "ORDER BY artist_name ASC, release_year ASC, album_name ASC"

ALBUM_FILTERS = ("owned", "wanted")

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


class CollectionError(CoreError):
    """Base error for MusicCollection operations."""


class AlbumValidationError(CollectionError):
    """Raised when album input is missing required values."""


class DuplicateAlbumError(CollectionError):
    """Raised when an artist/album pair already exists in the collection."""


def normalize_boolean(value: Any) -> int:
    """Convert form/JSON booleans ("true", "1", True, 1, ...) to 0/1."""
    if isinstance(value, str):
        return 1 if value.strip().lower() in _TRUE_STRINGS else 0
    return 1 if value else 0


@dataclass(frozen=True, slots=True)
class AlbumInput:
    """
    User-supplied album values.

    Field order matches the store's canonical mutable-field order, so
    `as_params()` lines up with the INSERT/UPDATE statements below.
    """

    artist_name: str
    album_name: str
    release_year: int | None = None
    is_owned: int = 0
    want_to_own: int = 0
    cover_url: str | None = None
    discogs_release_id: str | None = None
    style: str | None = None
    format: str | None = None
    artist_type: str | None = None
    label: str | None = None
    producer: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> AlbumInput:
        """Build from a loosely typed payload (JSON body, form data)."""
        release_year = data.get("release_year")
        discogs_id = data.get("discogs_release_id")
        return cls(
            artist_name=str(data.get("artist_name") or "").strip(),
            album_name=str(data.get("album_name") or "").strip(),
            release_year=coerce_int(release_year) if release_year not in (None, "") else None,
            is_owned=normalize_boolean(data.get("is_owned", False)),
            want_to_own=normalize_boolean(data.get("want_to_own", False)),
            cover_url=data.get("cover_url"),
            discogs_release_id=str(discogs_id) if discogs_id is not None else None,
            style=data.get("style"),
            format=data.get("format"),
            artist_type=data.get("artist_type"),
            label=data.get("label"),
            producer=data.get("producer"),
        )

    def as_params(self) -> list[Any]:
        values = asdict(self)
        return [values[name] for name in MUTABLE_FIELDS]


class MusicCollection:
    """
    High-level facade for the album collection.

    The store accepts anything; this layer enforces what the store relies on
    its callers for:
    - artist and album names are non-empty
    - an artist/album pair (case-insensitive) exists at most once

    Dependencies:
    - `RecordStore` for persistence and queries
    """

    def __init__(self, *, store: RecordStore) -> None:
        self._store = store

    @property
    def store(self) -> RecordStore:
        return self._store

    # ---- Reads ----

    def get_all_albums(self, filter: str | None = None, search: str = "") -> list[Record]:
        """Albums in listing order, optionally only owned/wanted and matching `search`."""
        sql = f"SELECT * FROM {TABLE} WHERE 1=1"
        params: list[Any] = []

        if filter == "owned":
            sql += " AND is_owned = 1"
        elif filter == "wanted":
            sql += " AND want_to_own = 1"

        if search:
            sql += " AND (artist_name LIKE ? OR album_name LIKE ?)"
            term = f"%{search}%"
            params.extend([term, term])

        sql += f" {LIST_ORDER}"
        return self._store.fetch_all(sql, params)

    def get_album_by_id(self, album_id: int) -> Record | None:
        rows = self._store.fetch_all(SQL_BY_ID, [album_id])
        return rows[0] if rows else None

    def album_exists(
        self, artist_name: str, album_name: str, exclude_id: int | None = None
    ) -> bool:
        sql = SQL_EXISTS
        params: list[Any] = [artist_name, album_name]
        if exclude_id:
            sql += " AND id != ?"
            params.append(exclude_id)
        return bool(self._store.fetch_all(sql, params))

    def get_artists(self, search: str = "") -> list[Record]:
        """Distinct artist names for autocomplete, ordered by artist sort key."""
        sql = f"SELECT DISTINCT artist_name FROM {TABLE}"
        params: list[Any] = []
        if search:
            sql += " WHERE artist_name LIKE ?"
            params.append(f"%{search}%")
        sql += " ORDER BY artist_name ASC"
        return self._store.fetch_all(sql, params)

    def get_albums_by_artist(self, artist_name: str, search: str = "") -> list[Record]:
        sql = (
            "SELECT id, artist_name, album_name, release_year, is_owned, want_to_own, "
            f"cover_url, discogs_release_id, style FROM {TABLE} WHERE artist_name = ?"
        )
        params: list[Any] = [artist_name]
        if search:
            sql += " AND album_name LIKE ?"
            params.append(f"%{search}%")
        sql += " ORDER BY album_name ASC"
        return self._store.fetch_all(sql, params)

    def get_stats(self) -> dict[str, Any]:
        """
        Collection statistics.

        Store aggregates (totals, style/format frequency tables) plus
        `year_counts`: albums per release year, by descending count and then
        descending year.
        """
        rows = self._store.fetch_all(SQL_STATS)
        stats: dict[str, Any] = dict(rows[0]) if rows else {}
        for key in ("total_albums", "owned_count", "wanted_count", "unique_artists"):
            stats.setdefault(key, 0)
        stats.setdefault("style_counts", {})
        stats.setdefault("format_counts", {})

        year_counts: dict[int, int] = {}
        for album in self.get_all_albums():
            year = coerce_int(album.get("release_year"))
            if year:
                year_counts[year] = year_counts.get(year, 0) + 1

        ordered = sorted(year_counts.items(), key=lambda item: (-item[1], -item[0]))
        stats["year_counts"] = {str(year): count for year, count in ordered}
        return stats

    # ---- Writes ----

    def add_album(self, album: AlbumInput) -> bool:
        self._validate(album)
        if self.album_exists(album.artist_name, album.album_name):
            logger.debug("Duplicate album rejected: %s - %s", album.artist_name, album.album_name)
            raise DuplicateAlbumError(
                f"Album '{album.album_name}' by '{album.artist_name}' "
                "already exists in your collection."
            )
        return self._store.execute(SQL_INSERT, album.as_params())

    def update_album(self, album_id: int, album: AlbumInput) -> bool:
        self._validate(album)
        if self.get_album_by_id(album_id) is None:
            raise NotFoundError(f"Album {album_id} not found")
        if self.album_exists(album.artist_name, album.album_name, exclude_id=album_id):
            raise DuplicateAlbumError(
                f"Album '{album.album_name}' by '{album.artist_name}' "
                "already exists in your collection."
            )
        return self._store.execute(SQL_UPDATE, [*album.as_params(), album_id])

    def delete_album(self, album_id: int) -> bool:
        return self._store.execute(SQL_DELETE, [album_id])

    @staticmethod
    def _validate(album: AlbumInput) -> None:
        if not album.artist_name or not album.artist_name.strip():
            raise AlbumValidationError("Artist name is required")
        if not album.album_name or not album.album_name.strip():
            raise AlbumValidationError("Album name is required")
