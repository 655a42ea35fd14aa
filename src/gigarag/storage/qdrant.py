"""Qdrant vector database backend."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from ..core.models import SearchHit, VectorRecord
from .base import CollectionError, CollectionInfo, VectorStore

logger = logging.getLogger(__name__)

DISTANCES = {
    "cosine": Distance.COSINE,
    "dot": Distance.DOT,
    "euclid": Distance.EUCLID,
}


class PointPayload(BaseModel):
    """Payload stored with every point."""

    model_config = ConfigDict(extra="allow")

    content: str
    filePath: str
    fileSize: int = 0
    createdAt: str = ""
    chunkId: str = ""
    type: str = "file"
    name: str = ""
    startLine: int = 1
    endLine: int = 1
    language: str = ""
    metadata: Dict[str, Any] = {}


class QdrantVectorStore(VectorStore):

    def __init__(
        self,
        collection_name: str,
        host: str = "localhost",
        port: int = 6333,
        url: Optional[str] = None,
        client: Optional[QdrantClient] = None,
    ):
        self.collection_name = collection_name
        self.host = host
        self.port = port
        self.url = url
        if client is not None:
            self.client = client
        elif url == ":memory:":
            self.client = QdrantClient(location=":memory:")
        elif url:
            self.client = QdrantClient(url=url)
        else:
            self.client = QdrantClient(host=host, port=port)

    def list_collections(self) -> List[str]:
        try:
            collections = self.client.get_collections().collections
        except Exception as e:
            raise CollectionError(f"Failed to list collections: {e}") from e
        return [c.name for c in collections]

    def delete_collection(self) -> None:
        try:
            self.client.delete_collection(collection_name=self.collection_name)
        except Exception as e:
            raise CollectionError(f"Failed to delete collection '{self.collection_name}': {e}") from e
        logger.info(f"Deleted collection '{self.collection_name}'")

    def create_collection(self, dimension: int, distance: str = "cosine") -> None:
        if distance not in DISTANCES:
            raise ValueError(f"Unknown distance metric: {distance!r}")
        try:
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=dimension, distance=DISTANCES[distance]),
            )
        except Exception as e:
            raise CollectionError(f"Failed to create collection '{self.collection_name}': {e}") from e
        logger.info(f"Created collection '{self.collection_name}' (dim={dimension}, distance={distance})")

    def upsert(self, records: List[VectorRecord]) -> None:
        if not records:
            logger.warning("No records to upsert")
            return
        points = [
            PointStruct(id=record.id, vector=record.vector, payload=record.payload)
            for record in records
        ]
        self.client.upsert(collection_name=self.collection_name, points=points, wait=True)
        logger.debug(f"Upserted {len(points)} points into '{self.collection_name}'")

    def search(
        self,
        query_vector: List[float],
        limit: int,
        score_threshold: Optional[float] = None,
    ) -> List[SearchHit]:
        """Search using Qdrant's vector search; the threshold is applied server-side."""
        try:
            results = self.client.query_points(
                collection_name=self.collection_name,
                query=query_vector,
                limit=limit,
                score_threshold=score_threshold,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error(f"Error searching in collection '{self.collection_name}': {e}")
            raise

        hits = []
        for point in results.points:
            try:
                payload = PointPayload.model_validate(point.payload or {})
            except ValidationError as e:
                logger.warning(f"Skipping point {point.id} with malformed payload: {e}")
                continue
            hits.append(SearchHit(id=str(point.id), score=point.score, payload=payload.model_dump()))
        return hits

    def get_collection_info(self) -> Optional[CollectionInfo]:
        if not self.collection_exists():
            return None
        info = self.client.get_collection(collection_name=self.collection_name)
        vectors = info.config.params.vectors
        dimension = getattr(vectors, "size", None)
        distance = getattr(vectors, "distance", None)
        return CollectionInfo(
            name=self.collection_name,
            points_count=info.points_count or 0,
            dimension=dimension,
            distance=str(getattr(distance, "value", distance or "")).lower(),
        )


def make_vector_store(cfg: Dict, collection_name: Optional[str] = None) -> VectorStore:
    vector_store_cfg = cfg.get("vector_store", {})
    backend = vector_store_cfg.get("backend", "qdrant")
    if backend != "qdrant":
        raise ValueError(f"Unknown vector store backend: {backend!r}")

    qdrant_cfg = vector_store_cfg.get("qdrant", {})
    return QdrantVectorStore(
        collection_name=collection_name or qdrant_cfg.get("collection", "giga_codebase"),
        host=qdrant_cfg.get("host", "localhost"),
        port=int(qdrant_cfg.get("port", 6333)),
        url=qdrant_cfg.get("url"),
    )
