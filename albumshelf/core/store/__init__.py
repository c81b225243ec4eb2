"""
Internal store subpackage for albumshelf.

This package splits the record store into focused units (record model,
persistence, locking, query parsing and the executors) while keeping
`RecordStore` as the single public interface that the rest of the codebase
imports.

Re-exports here are primarily for convenience inside the `core` package.
External code should import `RecordStore` from `albumshelf.core.record_store`.
"""

from __future__ import annotations

# Models
from .models import ALBUM_FIELDS, MUTABLE_FIELDS, Collection, Record

# Persistence / locking
from .locking import write_lock
from .persistence import load_collection, save_collection

# Queries
from .query import parse_query

__all__ = [
    # models
    "ALBUM_FIELDS",
    "MUTABLE_FIELDS",
    "Collection",
    "Record",
    # persistence / locking
    "load_collection",
    "save_collection",
    "write_lock",
    # queries
    "parse_query",
]
