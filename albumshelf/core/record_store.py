"""
Embedded record store for the album collection.

Goals:
- One JSON file, loaded whole, rewritten whole.
- A small pseudo-SQL surface (`query` / `execute`) for the model layer.
- Safe concurrent writers through an advisory lock file.

Note:
- Record model and coercion live in `albumshelf.core.store.models`
- File format lives in `albumshelf.core.store.persistence`
- Parsing lives in `albumshelf.core.store.query`; executors in
  `filters`, `ordering`, `aggregates` and `writes`
- `RecordStore` remains the public facade used by the rest of the codebase

Consistency:
- Reads are served from the snapshot loaded at construction (or by the last
  write / `reload()`), so another process's writes are not visible until
  then. Set `reload_on_read=True` to trade speed for freshness.
- Writes take the lock, reload the file, mutate and save. Concurrent writers
  therefore never reuse ids or drop each other's records.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Sequence

from albumshelf.core import UnrecognizedQueryError
from albumshelf.core.store.aggregates import aggregate, distinct_values
from albumshelf.core.store.filters import filter_records
from albumshelf.core.store.locking import DEFAULT_LOCK_TIMEOUT, DEFAULT_POLL_INTERVAL, write_lock
from albumshelf.core.store.models import Collection, Record
from albumshelf.core.store.ordering import sort_records
from albumshelf.core.store.persistence import load_collection, save_collection
from albumshelf.core.store.query import (
    Delete,
    Insert,
    Query,
    Select,
    Update,
    leading_keyword,
    parse_query,
)
from albumshelf.core.store.writes import apply_delete, apply_insert, apply_update

if TYPE_CHECKING:
    from albumshelf.config import StoreConfig

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Single-table store backed by a JSON file.

    Usage:
        store = RecordStore("data/music_collection.json")
        store.execute("INSERT INTO music_collection (artist_name, album_name) VALUES (?, ?)",
                      ["Radiohead", "OK Computer"])
        rows = store.query("SELECT * FROM music_collection ORDER BY artist_name ASC")

    Notes:
    - The instance owns its in-memory `Collection`; nothing else mutates it.
    - `strict=False` restores the legacy behaviour for unrecognised queries
      (empty result / False instead of `UnrecognizedQueryError`).
    """

    def __init__(
        self,
        data_path: str | Path,
        lock_path: str | Path | None = None,
        *,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        lock_poll_interval: float = DEFAULT_POLL_INTERVAL,
        strict: bool = True,
        reload_on_read: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._data_path = Path(data_path)
        self._lock_path = (
            Path(lock_path) if lock_path is not None else self._data_path.with_suffix(".lock")
        )
        self._lock_timeout = lock_timeout
        self._lock_poll_interval = lock_poll_interval
        self._strict = strict
        self._reload_on_read = reload_on_read
        self._clock = clock
        self._mutex = threading.RLock()
        self._collection: Collection = load_collection(self._data_path)

    @classmethod
    def from_config(cls, config: StoreConfig) -> RecordStore:
        """Build a store from the `[store]` section of the configuration."""
        return cls(
            config.data_file,
            config.lock_file,
            lock_timeout=config.lock_timeout,
            lock_poll_interval=config.lock_poll_interval,
            strict=config.strict_queries,
            reload_on_read=config.reload_on_read,
        )

    @property
    def data_path(self) -> Path:
        return self._data_path

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def next_id(self) -> int:
        with self._mutex:
            return self._collection.next_id

    def __len__(self) -> int:
        with self._mutex:
            return len(self._collection.albums)

    def reload(self) -> None:
        """Replace the resident snapshot with the current file contents."""
        collection = load_collection(self._data_path)
        with self._mutex:
            self._collection = collection

    # ===========================================================================
    # Public query surface
    # ===========================================================================

    def query(self, text: str, params: Sequence[Any] = ()) -> list[Record] | bool:
        """
        Run one statement.

        Returns a list of records for SELECT and a boolean for INSERT, UPDATE
        and DELETE. Write failures (lock timeout, I/O) raise; they are never
        reported as False.
        """
        params = list(params)
        stmt = self._parse(text)
        if stmt is None:
            return [] if leading_keyword(text) in (None, "select") else False
        if isinstance(stmt, Select):
            return self._select(stmt, params)
        return self._write(stmt, params)

    def execute(self, text: str, params: Sequence[Any] = ()) -> bool:
        """Run an INSERT, UPDATE or DELETE statement."""
        params = list(params)
        stmt = self._parse(text)
        if stmt is None:
            return False
        if isinstance(stmt, Select):
            return self._reject(text, "execute() only accepts INSERT, UPDATE or DELETE")
        return self._write(stmt, params)

    def fetch_all(self, text: str, params: Sequence[Any] = ()) -> list[Record]:
        """Run a SELECT statement and return its rows."""
        params = list(params)
        stmt = self._parse(text)
        if stmt is None:
            return []
        if not isinstance(stmt, Select):
            self._reject(text, "fetch_all() only accepts SELECT")
            return []
        return self._select(stmt, params)

    def prepare(self, text: str) -> Statement:
        return Statement(self, text)

    # ===========================================================================
    # Internals
    # ===========================================================================

    def _parse(self, text: str) -> Query | None:
        try:
            return parse_query(text)
        except UnrecognizedQueryError as e:
            if self._strict:
                logger.warning("Rejected query: %s", e)
                raise
            logger.warning("Ignoring unrecognised query (lenient mode): %s", e)
            return None

    def _reject(self, text: str, reason: str) -> bool:
        if self._strict:
            logger.warning("Rejected query %r: %s", text, reason)
            raise UnrecognizedQueryError(f"{reason}: {text!r}")
        logger.warning("Ignoring query %r (lenient mode): %s", text, reason)
        return False

    def _select(self, stmt: Select, params: Sequence[Any]) -> list[Record]:
        if self._reload_on_read:
            self.reload()
        with self._mutex:
            albums = list(self._collection.albums)

        rows = filter_records(albums, stmt.where, params)

        if stmt.aggregates:
            return [aggregate(rows, stmt.aggregates)]

        rows = sort_records(rows, stmt.order)

        if stmt.distinct and stmt.columns:
            return distinct_values(rows, stmt.columns[0])

        if stmt.columns is None:
            return [dict(r) for r in rows]
        return [{name: r.get(name) for name in stmt.columns} for r in rows]

    def _write(self, stmt: Insert | Update | Delete, params: Sequence[Any]) -> bool:
        with self._mutex, write_lock(
            self._lock_path,
            timeout=self._lock_timeout,
            poll_interval=self._lock_poll_interval,
        ):
            # Reload under the lock so writes from other instances are kept.
            collection = load_collection(self._data_path)

            if isinstance(stmt, Insert):
                apply_insert(collection, stmt, params, self._clock())
                changed = True
            elif isinstance(stmt, Update):
                changed = apply_update(collection, stmt, params, self._clock())
            else:
                changed = apply_delete(collection, stmt, params)

            if changed:
                save_collection(self._data_path, collection)
            self._collection = collection

        return True


class Statement:
    """A query text bound to a store, executed with different parameters."""

    def __init__(self, store: RecordStore, text: str) -> None:
        self._store = store
        self._text = text

    @property
    def text(self) -> str:
        return self._text

    def execute(self, params: Sequence[Any] = ()) -> list[Record] | bool:
        return self._store.query(self._text, params)

    def fetch_all(self, params: Sequence[Any] = ()) -> list[Record]:
        return self._store.fetch_all(self._text, params)

    def fetch_one(self, params: Sequence[Any] = ()) -> Record | None:
        rows = self.fetch_all(params)
        return rows[0] if rows else None
