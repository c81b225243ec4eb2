"""
On-disk representation of the collection.

The data file is a single JSON document:

    {"albums": [ {...}, ... ], "next_id": N}

It is always read and written whole. Saves go through a temporary file in the
same directory followed by `os.replace`, so a crash mid-write leaves either the
old or the new document, never a truncated one.

`save_collection` must only be called while the write lock is held
(see `albumshelf.core.store.locking`).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from albumshelf.core import CorruptStoreError, StoreReadError, StoreWriteError
from albumshelf.core.store.models import Collection, coerce_int

logger = logging.getLogger(__name__)


def _parse_document(path: Path, raw: str) -> Collection:
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptStoreError(f"Data file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CorruptStoreError(f"Data file {path} does not contain a JSON object")

    albums = data.get("albums", [])
    # Older files stored albums as an object keyed by position.
    if isinstance(albums, dict):
        albums = list(albums.values())
    if not isinstance(albums, list) or not all(isinstance(a, dict) for a in albums):
        raise CorruptStoreError(f"Data file {path} has a malformed 'albums' value")

    next_id = coerce_int(data.get("next_id"))
    if next_id is None:
        next_id = 1

    collection = Collection(albums=albums, next_id=next_id)

    max_id = collection.max_id()
    if collection.next_id <= max_id:
        logger.warning(
            "Data file %s has next_id=%d but max id %d; repairing counter",
            path,
            collection.next_id,
            max_id,
        )
        collection.next_id = max_id + 1

    return collection


def load_collection(path: str | Path) -> Collection:
    """
    Load the collection from `path`.

    A missing file yields an empty collection (the file is not created).
    A file that exists but cannot be parsed raises `CorruptStoreError`; one
    that cannot be read at all raises `StoreReadError`.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("Data file %s does not exist; starting empty", path)
        return Collection()
    except UnicodeDecodeError as e:
        raise CorruptStoreError(f"Data file {path} is not UTF-8: {e}") from e
    except OSError as e:
        raise StoreReadError(f"Failed to read data file {path}: {e}") from e

    if not raw.strip():
        logger.warning("Data file %s is empty; starting with an empty collection", path)
        return Collection()

    collection = _parse_document(path, raw)
    logger.debug(
        "Loaded %d albums from %s (next_id=%d)", len(collection.albums), path, collection.next_id
    )
    return collection


def save_collection(path: str | Path, collection: Collection) -> None:
    """Serialize the whole collection and atomically replace the data file."""
    path = Path(path)
    payload = json.dumps(collection.to_document(), indent=4)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600 files.
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise StoreWriteError(f"Failed to write data file {path}: {e}") from e

    logger.debug(
        "Saved %d albums to %s (next_id=%d)", len(collection.albums), path, collection.next_id
    )
