"""
Tests for albumshelf.web (FastAPI REST adapter).

These tests verify:
- FastAPI application setup (health, CORS)
- Album CRUD endpoints and their status codes
- Stats and artist autocomplete endpoints
- Store failures surface as 503 in the response envelope
"""

from __future__ import annotations

from pathlib import Path

import pytest
import uvicorn
from httpx import ASGITransport, AsyncClient

from albumshelf.config import WebConfig
from albumshelf.core.collection import MusicCollection
from albumshelf.core.record_store import RecordStore
from albumshelf.core.store.locking import write_lock
from albumshelf.web.server import WebServer

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "music_collection.json", lock_timeout=0.1)


@pytest.fixture
def collection(store: RecordStore) -> MusicCollection:
    return MusicCollection(store=store)


@pytest.fixture
def web_server(collection: MusicCollection) -> WebServer:
    """Create a WebServer instance for testing."""
    return WebServer(collection, WebConfig(cors_origins=["http://localhost:3000"]))


@pytest.fixture
async def client(web_server: WebServer) -> AsyncClient:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=web_server.app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def post_album(client: AsyncClient, artist: str, album: str, **fields) -> None:
    response = await client.post(
        "/api/albums", json={"artist_name": artist, "album_name": album, **fields}
    )
    assert response.status_code == 201, response.text


# =============================================================================
# Server
# =============================================================================


class TestWebServer:
    """Tests for WebServer setup."""

    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "server": "albumshelf"}

    async def test_cors_origin_from_config(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_defaults(self, web_server: WebServer) -> None:
        assert web_server.host == "127.0.0.1"
        assert web_server.port == 8080

    async def test_serve_configures_uvicorn(
        self, web_server: WebServer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        served: list[tuple[str, int]] = []

        async def fake_serve(self: uvicorn.Server, sockets=None) -> None:
            served.append((self.config.host, self.config.port))

        monkeypatch.setattr(uvicorn.Server, "serve", fake_serve)

        await web_server.serve(host="0.0.0.0", port=9999)

        assert served == [("0.0.0.0", 9999)]
        assert web_server.host == "0.0.0.0"
        assert web_server.port == 9999

    async def test_malformed_request_uses_envelope(self, client: AsyncClient) -> None:
        response = await client.get("/api/albums/not-a-number")
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid request"
        assert body["data"][0]["loc"] == ["path", "album_id"]

        response = await client.post(
            "/api/albums", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422
        assert response.json()["success"] is False


# =============================================================================
# Albums
# =============================================================================


class TestAlbumEndpoints:
    """Tests for /api/albums."""

    async def test_list_empty(self, client: AsyncClient) -> None:
        response = await client.get("/api/albums")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "", "data": []}

    async def test_add_and_list(self, client: AsyncClient) -> None:
        await post_album(client, "The Beatles", "Revolver", release_year="1966", is_owned=True)
        await post_album(client, "Aaron Dilloway", "Modern Jester", want_to_own="1")

        body = (await client.get("/api/albums")).json()
        assert body["success"] is True
        assert [a["album_name"] for a in body["data"]] == ["Revolver", "Modern Jester"]
        assert body["data"][0]["release_year"] == 1966
        assert body["data"][0]["is_owned"] == 1

        owned = (await client.get("/api/albums", params={"filter": "owned"})).json()
        assert [a["album_name"] for a in owned["data"]] == ["Revolver"]

        found = (await client.get("/api/albums", params={"search": "jest"})).json()
        assert [a["album_name"] for a in found["data"]] == ["Modern Jester"]

    async def test_add_response_envelope(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/albums", json={"artist_name": "Radiohead", "album_name": "Kid A"}
        )
        assert response.json() == {
            "success": True,
            "message": "Album added successfully",
            "data": None,
        }

    async def test_unknown_filter(self, client: AsyncClient) -> None:
        response = await client.get("/api/albums", params={"filter": "borrowed"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_add_invalid(self, client: AsyncClient) -> None:
        response = await client.post("/api/albums", json={"artist_name": "Radiohead"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Album name is required",
            "data": None,
        }

    async def test_add_duplicate(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "Kid A")

        response = await client.post(
            "/api/albums", json={"artist_name": "radiohead", "album_name": "KID A"}
        )
        assert response.status_code == 409
        assert "already exists" in response.json()["message"]

    async def test_get_one(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "Kid A")

        response = await client.get("/api/albums/1")
        assert response.status_code == 200
        assert response.json()["data"]["album_name"] == "Kid A"

        response = await client.get("/api/albums/2")
        assert response.status_code == 404

    async def test_update(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "Kid A")

        response = await client.put(
            "/api/albums/1",
            json={"artist_name": "Radiohead", "album_name": "Kid A", "release_year": 2000},
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Album updated successfully"

        album = (await client.get("/api/albums/1")).json()["data"]
        assert album["release_year"] == 2000

    async def test_update_errors(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "Kid A")
        await post_album(client, "Radiohead", "Amnesiac")

        missing = await client.put(
            "/api/albums/9", json={"artist_name": "Radiohead", "album_name": "X"}
        )
        assert missing.status_code == 404

        invalid = await client.put("/api/albums/1", json={"artist_name": "", "album_name": "X"})
        assert invalid.status_code == 400

        duplicate = await client.put(
            "/api/albums/2", json={"artist_name": "Radiohead", "album_name": "Kid A"}
        )
        assert duplicate.status_code == 409

    async def test_delete(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "Kid A")

        response = await client.delete("/api/albums/1")
        assert response.status_code == 200
        assert response.json()["message"] == "Album deleted successfully"
        assert (await client.get("/api/albums")).json()["data"] == []

    async def test_lock_timeout_is_503(self, client: AsyncClient, store: RecordStore) -> None:
        with write_lock(store.lock_path, timeout=1.0):
            response = await client.post(
                "/api/albums", json={"artist_name": "Radiohead", "album_name": "Kid A"}
            )

        assert response.status_code == 503
        assert response.json()["message"] == "Operation failed, please retry"

    async def test_unopenable_lock_file_is_503(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        store = RecordStore(tmp_path / "albums.json", blocker / "albums.lock")
        server = WebServer(MusicCollection(store=store))

        transport = ASGITransport(app=server.app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/albums", json={"artist_name": "Radiohead", "album_name": "Kid A"}
            )

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "message": "Data store unavailable",
            "data": None,
        }

    async def test_corrupt_store_is_503(self, client: AsyncClient, store: RecordStore) -> None:
        store.data_path.write_text("{broken", encoding="utf-8")

        response = await client.post(
            "/api/albums", json={"artist_name": "Radiohead", "album_name": "Kid A"}
        )

        assert response.status_code == 503
        assert response.json()["message"] == "Data store unavailable"


# =============================================================================
# Stats / Artists
# =============================================================================


class TestStatsAndArtists:
    """Tests for /api/stats and /api/artists."""

    async def test_stats(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "OK Computer", release_year=1997, is_owned=1)

        stats = (await client.get("/api/stats")).json()["data"]
        assert stats["total_albums"] == 1
        assert stats["owned_count"] == 1
        assert stats["wanted_count"] == 0
        assert stats["unique_artists"] == 1
        assert stats["year_counts"] == {"1997": 1}

    async def test_artists(self, client: AsyncClient) -> None:
        await post_album(client, "The Beatles", "Revolver")
        await post_album(client, "Radiohead", "Kid A")
        await post_album(client, "Radiohead", "Amnesiac")

        body = (await client.get("/api/artists")).json()
        assert body["data"] == [{"artist_name": "The Beatles"}, {"artist_name": "Radiohead"}]

        body = (await client.get("/api/artists", params={"search": "beat"})).json()
        assert body["data"] == [{"artist_name": "The Beatles"}]

    async def test_albums_by_artist(self, client: AsyncClient) -> None:
        await post_album(client, "Radiohead", "Kid A")
        await post_album(client, "Radiohead", "Amnesiac")
        await post_album(client, "The Beatles", "Revolver")

        body = (await client.get("/api/artists/Radiohead/albums")).json()
        assert [a["album_name"] for a in body["data"]] == ["Amnesiac", "Kid A"]

        body = (await client.get("/api/artists/Radiohead/albums", params={"search": "kid"})).json()
        assert [a["album_name"] for a in body["data"]] == ["Kid A"]

    async def test_albums_by_artist_with_slash(self, client: AsyncClient) -> None:
        await post_album(client, "AC/DC", "Back in Black")
        await post_album(client, "AC/DC", "Highway to Hell")
        await post_album(client, "ACDC Tribute", "Covers")

        for path in ("/api/artists/AC%2FDC/albums", "/api/artists/AC/DC/albums"):
            response = await client.get(path)
            assert response.status_code == 200, path
            names = [a["album_name"] for a in response.json()["data"]]
            assert names == ["Back in Black", "Highway to Hell"]
