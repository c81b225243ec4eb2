"""
REST API Routes for albumshelf.

Provides REST endpoints for the browser UI:
- /api/albums: Album listing, lookup, add, update, delete
- /api/stats: Collection statistics
- /api/artists: Artist autocomplete and albums by artist

Successful responses use the envelope {"success", "message", "data"}.
Errors are raised as HTTPException; WebServer renders them in the same
envelope with "success" set to false.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from fastapi import APIRouter, HTTPException

from albumshelf.core import LockTimeoutError, NotFoundError, StoreError
from albumshelf.core.collection import (
    ALBUM_FILTERS,
    AlbumInput,
    AlbumValidationError,
    DuplicateAlbumError,
)

if TYPE_CHECKING:
    from albumshelf.core.collection import MusicCollection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])

T = TypeVar("T")

# Reference set during route registration
_collection: MusicCollection | None = None


def register_api_routes(app, collection: MusicCollection) -> None:
    """
    Register API routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        collection: MusicCollection backing the endpoints
    """
    global _collection
    _collection = collection
    app.include_router(router)


def _require_collection() -> MusicCollection:
    if _collection is None:
        raise HTTPException(status_code=503, detail="Collection not initialized")
    return _collection


def _envelope(data: Any = None, message: str = "") -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


async def _call(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking collection call off the event loop and map its errors."""
    try:
        return await asyncio.to_thread(func, *args)
    except AlbumValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except DuplicateAlbumError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except LockTimeoutError as e:
        logger.warning("Write lock timeout: %s", e)
        raise HTTPException(status_code=503, detail="Operation failed, please retry") from e
    except StoreError as e:
        logger.error("Data store unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Data store unavailable") from e


# =============================================================================
# Album Endpoints
# =============================================================================


@router.get("/api/albums")
async def list_albums(filter: str | None = None, search: str = "") -> dict[str, Any]:
    """List albums in collection order.

    Query params:
        filter: "owned" or "wanted" (optional)
        search: Substring matched against artist and album names
    """
    collection = _require_collection()
    if filter is not None and filter not in ALBUM_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown filter: {filter}")

    albums = await _call(collection.get_all_albums, filter, search)
    return _envelope(albums)


@router.get("/api/albums/{album_id}")
async def get_album(album_id: int) -> dict[str, Any]:
    """Get a single album."""
    collection = _require_collection()
    album = await _call(collection.get_album_by_id, album_id)
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return _envelope(album)


@router.post("/api/albums", status_code=201)
async def add_album(payload: dict[str, Any]) -> dict[str, Any]:
    """Add an album. `artist_name` and `album_name` are required."""
    collection = _require_collection()
    album = AlbumInput.from_mapping(payload)
    await _call(collection.add_album, album)
    return _envelope(message="Album added successfully")


@router.put("/api/albums/{album_id}")
async def update_album(album_id: int, payload: dict[str, Any]) -> dict[str, Any]:
    """Replace an album's values."""
    collection = _require_collection()
    album = AlbumInput.from_mapping(payload)
    await _call(collection.update_album, album_id, album)
    return _envelope(message="Album updated successfully")


@router.delete("/api/albums/{album_id}")
async def delete_album(album_id: int) -> dict[str, Any]:
    """Delete an album. Unknown ids are not an error."""
    collection = _require_collection()
    await _call(collection.delete_album, album_id)
    return _envelope(message="Album deleted successfully")


# =============================================================================
# Stats / Autocomplete
# =============================================================================


@router.get("/api/stats")
async def get_stats() -> dict[str, Any]:
    """Collection statistics (totals, style/format/year counts)."""
    collection = _require_collection()
    stats = await _call(collection.get_stats)
    return _envelope(stats)


@router.get("/api/artists")
async def list_artists(search: str = "") -> dict[str, Any]:
    """Distinct artist names for autocomplete."""
    collection = _require_collection()
    artists = await _call(collection.get_artists, search)
    return _envelope(artists)


@router.get("/api/artists/{artist_name:path}/albums")
async def list_albums_by_artist(artist_name: str, search: str = "") -> dict[str, Any]:
    """Albums by one artist, optionally filtered by album name.

    The name may contain "/" (e.g. "AC/DC"), sent raw or as %2F.
    """
    collection = _require_collection()
    albums = await _call(collection.get_albums_by_artist, artist_name, search)
    return _envelope(albums)
