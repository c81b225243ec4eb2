"""
Web Server Module for albumshelf.

This module provides the WebServer class that creates and manages the
FastAPI application and registers the REST routes backed by a
MusicCollection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from albumshelf import __version__
from albumshelf.config import WebConfig
from albumshelf.web.routes.api import register_api_routes

if TYPE_CHECKING:
    from albumshelf.core.collection import MusicCollection

logger = logging.getLogger(__name__)


def _error_body(message: str, data: Any = None) -> dict[str, Any]:
    return {"success": False, "message": message, "data": data}


class WebServer:
    """
    FastAPI-based web server for albumshelf.

    Serves the JSON API used by the collection browser UI.
    """

    def __init__(
        self,
        music_collection: MusicCollection,
        config: WebConfig | None = None,
    ) -> None:
        """
        Initialize the WebServer.

        Args:
            music_collection: Collection facade behind the API
            config: `[web]` settings; defaults apply when omitted
        """
        self.music_collection = music_collection
        self.config = config or WebConfig()

        self.app = FastAPI(
            title="albumshelf",
            description="Personal album collection manager",
            version=__version__,
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=list(self.config.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._host = self.config.host
        self._port = self.config.port

        self._register_routes()

    def _register_routes(self) -> None:
        """Register all routes with the FastAPI app."""

        @self.app.get("/health")
        async def health_check() -> dict[str, str]:
            """Health check endpoint."""
            return {"status": "ok", "server": "albumshelf"}

        @self.app.exception_handler(StarletteHTTPException)
        async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
            """Render errors in the API response envelope."""
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_body(str(exc.detail)),
                headers=getattr(exc, "headers", None),
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
            """Malformed path, query or body values (422) in the same envelope."""
            errors = [
                {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", ""))}
                for err in exc.errors()
            ]
            return JSONResponse(
                status_code=422,
                content=_error_body("Invalid request", errors),
            )

        register_api_routes(self.app, self.music_collection)

    async def serve(self, host: str | None = None, port: int | None = None) -> None:
        """
        Run the web server until it is stopped or interrupted.

        Args:
            host: Host address to bind to (default from config)
            port: Port to listen on (default from config)
        """
        self._host = host or self.config.host
        self._port = port or self.config.port

        config = uvicorn.Config(
            self.app,
            host=self._host,
            port=self._port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)

        logger.info("Web server listening on http://%s:%d", self._host, self._port)
        await server.serve()

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host
