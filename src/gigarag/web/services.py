"""Explicitly constructed services shared by the API routes."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session, sessionmaker

from ..indexing import EmbeddingIndexer
from ..core import make_embedder
from ..llm import create_client
from ..search import RetrievalEngine
from ..storage import VectorStore, make_vector_store


class Services:
    """Everything a request needs, built once per app instance.

    Embedders and the generation client are created on first use so the app
    can start without provider credentials.
    """

    def __init__(
        self,
        cfg: Dict,
        root: Path,
        session_factory: sessionmaker,
        store: Optional[VectorStore] = None,
        indexer_factory: Optional[Callable[[], EmbeddingIndexer]] = None,
        engine_factory: Optional[Callable[[], RetrievalEngine]] = None,
    ):
        self.cfg = cfg
        self.root = Path(root)
        self.session_factory = session_factory
        self.store = store or make_vector_store(cfg)
        self._indexer_factory = indexer_factory
        self._engine_factory = engine_factory
        self._engine: Optional[RetrievalEngine] = None
        # job id -> latest progress event
        self.progress: Dict[int, Dict] = {}

    def indexer(self) -> EmbeddingIndexer:
        if self._indexer_factory is not None:
            return self._indexer_factory()
        return EmbeddingIndexer(make_embedder(self.cfg), self.store, self.cfg)

    def engine(self) -> RetrievalEngine:
        if self._engine is None:
            if self._engine_factory is not None:
                self._engine = self._engine_factory()
            else:
                self._engine = RetrievalEngine(make_embedder(self.cfg), self.store, create_client(self.cfg), self.cfg)
        return self._engine


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db(services: Services = Depends(get_services)):
    db: Session = services.session_factory()
    try:
        yield db
    finally:
        db.close()
