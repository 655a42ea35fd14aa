"""Main FastAPI application."""

from pathlib import Path
from typing import Dict, Optional

from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware

from ..config import load_config, validate_config
from .database import make_session_factory
from .routes import indexing, search
from .services import Services


def create_app(
    cfg: Optional[Dict] = None,
    root: Optional[Path] = None,
    services: Optional[Services] = None,
    database_url: Optional[str] = None,
) -> FastAPI:
    """Build the API around explicitly constructed services."""
    if services is None:
        root = Path(root or Path.cwd())
        cfg = cfg or load_config(root)
        errors = validate_config(cfg)
        if errors:
            raise ValueError("Invalid configuration: " + "; ".join(errors))
        services = Services(cfg, root, make_session_factory(database_url))

    app = FastAPI(title="giga-rag")
    app.state.services = services

    # Setup CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_router = APIRouter(prefix="/api")

    api_router.include_router(indexing.router)
    api_router.include_router(search.router)

    app.include_router(api_router)
    return app
