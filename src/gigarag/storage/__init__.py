"""Vector storage backends (Qdrant only)."""

from .base import CollectionError, CollectionInfo, VectorStore
from .qdrant import PointPayload, QdrantVectorStore, make_vector_store

__all__ = [
    "CollectionError",
    "CollectionInfo",
    "VectorStore",
    "PointPayload",
    "QdrantVectorStore",
    "make_vector_store",
]
