"""HTTP API for indexing and querying."""

from .app import create_app

__all__ = ["create_app"]
