"""giga-rag: structural code chunking, Qdrant indexing, and retrieval."""

__version__ = "0.1.0"
