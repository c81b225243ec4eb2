"""
INSERT / UPDATE / DELETE executors.

These functions mutate a `Collection` in memory and report whether anything
changed. Locking, reloading and persisting are the facade's job
(`albumshelf.core.record_store.RecordStore`).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from albumshelf.core.store.models import (
    MUTABLE_FIELDS,
    Collection,
    Record,
    coerce_field,
    coerce_int,
    new_record,
    timestamp,
)
from albumshelf.core.store.query import Delete, Insert, Update

logger = logging.getLogger(__name__)


def _insert_values(stmt: Insert, params: Sequence[Any]) -> dict[str, Any]:
    if stmt.values is None:
        # No VALUES clause: every parameter binds positionally.
        columns = stmt.columns or MUTABLE_FIELDS
        return {name: params[i] if i < len(params) else None for i, name in enumerate(columns)}

    columns = stmt.columns or MUTABLE_FIELDS[: len(stmt.values)]
    return {name: operand.bind(params) for name, operand in zip(columns, stmt.values)}


def apply_insert(
    collection: Collection, stmt: Insert, params: Sequence[Any], now: datetime
) -> Record:
    """Append a new record with a freshly allocated id and return it."""
    record = new_record(collection.allocate_id(), _insert_values(stmt, params), now)
    collection.albums.append(record)
    logger.info(
        "Inserted album id=%d (%s - %s)", record["id"], record["artist_name"], record["album_name"]
    )
    return record


def apply_update(
    collection: Collection, stmt: Update, params: Sequence[Any], now: datetime
) -> bool:
    """Overwrite the assigned fields of the addressed record. Unknown id is a no-op."""
    album_id = coerce_int(stmt.id.bind(params))
    record = collection.find(album_id) if album_id is not None else None
    if record is None:
        logger.debug("Update skipped: no album with id=%s", album_id)
        return False

    for name, operand in stmt.assignments:
        record[name] = coerce_field(name, operand.bind(params))
    record["updated_date"] = timestamp(now)
    logger.info("Updated album id=%d", album_id)
    return True


def apply_delete(collection: Collection, stmt: Delete, params: Sequence[Any]) -> bool:
    """Remove the addressed record. Unknown id is a no-op."""
    album_id = coerce_int(stmt.id.bind(params))
    if album_id is None:
        return False

    before = len(collection.albums)
    collection.albums = [a for a in collection.albums if coerce_int(a.get("id")) != album_id]
    if len(collection.albums) == before:
        logger.debug("Delete skipped: no album with id=%d", album_id)
        return False

    logger.info("Deleted album id=%d", album_id)
    return True
