"""Core functionality for giga-rag."""

from .models import CodeChunk, SearchHit, SourceDocument, VectorRecord
from .chunking import (
    Chunker,
    StructuralChunker,
    FixedWindowChunker,
    make_chunker,
    parse_file,
)
from .embeddings import (
    Embedder,
    EmbeddingError,
    GeminiEmbedder,
    OpenAIEmbedder,
    SentenceTransformersEmbedder,
    make_embedder,
    truncate_for_embedding,
)

__all__ = [
    "CodeChunk",
    "SearchHit",
    "SourceDocument",
    "VectorRecord",
    "Chunker",
    "StructuralChunker",
    "FixedWindowChunker",
    "make_chunker",
    "parse_file",
    "Embedder",
    "EmbeddingError",
    "GeminiEmbedder",
    "OpenAIEmbedder",
    "SentenceTransformersEmbedder",
    "make_embedder",
    "truncate_for_embedding",
]
