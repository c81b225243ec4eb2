"""
albumshelf - A personal album collection manager.

Albums live in a single JSON file behind a small pseudo-SQL record store,
shared safely between concurrent writers through an advisory lock. A
FastAPI layer serves the collection to the browser UI.
"""

__version__ = "0.1.0"
__author__ = "albumshelf Contributors"

from albumshelf.core.collection import MusicCollection
from albumshelf.core.record_store import RecordStore

__all__ = ["MusicCollection", "RecordStore", "__version__"]
