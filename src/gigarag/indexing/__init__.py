"""Indexing functionality for giga-rag."""

from .base import Indexer
from .indexer import BatchUpsertError, EmbeddingIndexer, IndexProgress, IndexStats, build_index
from .walker import ProjectStats, iter_files, list_source_files, project_stats

__all__ = [
    "Indexer",
    "BatchUpsertError",
    "EmbeddingIndexer",
    "IndexProgress",
    "IndexStats",
    "build_index",
    "iter_files",
    "list_source_files",
    "ProjectStats",
    "project_stats",
]
