"""
Core domain package.

This package contains the record store and the album collection model. It is
independent of any UI layer (web, CLI, etc.) and free of networking concerns.

We intentionally keep exports minimal; consumers should usually import from the
specific module they need (e.g. `albumshelf.core.record_store`).
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "NotFoundError",
    "StoreError",
    "CorruptStoreError",
    "LockTimeoutError",
    "StoreReadError",
    "StoreWriteError",
    "UnrecognizedQueryError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class NotFoundError(CoreError):
    """Raised when an album cannot be found."""


class StoreError(CoreError):
    """Base class for record store failures."""


class CorruptStoreError(StoreError):
    """Raised when the data file exists but cannot be parsed."""


class LockTimeoutError(StoreError):
    """Raised when the write lock is not acquired in time. Callers may retry."""


class StoreReadError(StoreError):
    """Raised when the data file exists but cannot be read (permissions, not a file)."""


class StoreWriteError(StoreError):
    """Raised when persisting the collection fails with an I/O error."""


class UnrecognizedQueryError(StoreError):
    """Raised for query text outside the supported vocabulary."""
