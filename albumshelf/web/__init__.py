"""
albumshelf Web Layer.

This package provides the HTTP/REST layer for albumshelf, used by the
browser UI to list, search, add, edit and delete albums.

Components:
- WebServer: FastAPI application with all routes
- routes.api: REST endpoints over MusicCollection
"""

from albumshelf.web.server import WebServer

__all__ = [
    "WebServer",
]
