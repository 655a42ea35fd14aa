"""Abstract vector storage interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..core.models import SearchHit, VectorRecord


class CollectionError(RuntimeError):
    """Collection lifecycle operation (list/delete/create) failed."""


@dataclass
class CollectionInfo:
    name: str
    points_count: int
    dimension: Optional[int]
    distance: str


class VectorStore(ABC):
    """Abstract base class for vector storage backends.

    A store is bound to one collection name. Lifecycle operations raise
    ``CollectionError``; ``upsert`` and ``search`` let backend errors propagate.
    """

    collection_name: str

    @abstractmethod
    def list_collections(self) -> List[str]:
        """List collection names known to the backend."""
        pass

    @abstractmethod
    def delete_collection(self) -> None:
        """Delete the bound collection."""
        pass

    @abstractmethod
    def create_collection(self, dimension: int, distance: str = "cosine") -> None:
        """Create the bound collection."""
        pass

    @abstractmethod
    def upsert(self, records: List[VectorRecord]) -> None:
        """Write records in a single call."""
        pass

    @abstractmethod
    def search(
        self,
        query_vector: List[float],
        limit: int,
        score_threshold: Optional[float] = None,
    ) -> List[SearchHit]:
        """Nearest neighbours, descending by score."""
        pass

    @abstractmethod
    def get_collection_info(self) -> Optional[CollectionInfo]:
        """Collection stats, or None when the collection does not exist."""
        pass

    def collection_exists(self) -> bool:
        return self.collection_name in self.list_collections()

    def recreate_collection(self, dimension: int, distance: str = "cosine") -> None:
        """Drop the collection if present and create it empty."""
        if self.collection_exists():
            self.delete_collection()
        self.create_collection(dimension, distance)

    def clear_collection(self) -> bool:
        """Delete the collection if it exists. Returns True when something was deleted."""
        if not self.collection_exists():
            return False
        self.delete_collection()
        return True

    def count(self) -> int:
        info = self.get_collection_info()
        return info.points_count if info else 0
