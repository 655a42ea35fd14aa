"""Retrieval over the indexed collection."""

from .engine import (
    QueryResult,
    RetrievalEngine,
    build_context,
    build_prompt,
    estimate_tokens,
    format_match,
)

__all__ = [
    "QueryResult",
    "RetrievalEngine",
    "build_context",
    "build_prompt",
    "estimate_tokens",
    "format_match",
]
