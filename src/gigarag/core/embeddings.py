"""Embedding models for semantic search."""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."

DEFAULT_DIMENSIONS = {
    "gemini": 3072,
    "openai": 1536,
}


class EmbeddingError(RuntimeError):
    """A single embedding call failed."""


def truncate_for_embedding(text: str, max_chars: int) -> str:
    """Hard cut at ``max_chars`` plus an ellipsis marker."""
    if len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER
    return text


class Embedder:
    """Abstract base class for embedding models."""

    dimension: int = 0

    def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple texts into vectors."""
        raise NotImplementedError

    def embed_one(self, text: str) -> List[float]:
        """Embed a single text into a vector."""
        return self.embed([text])[0]


class SentenceTransformersEmbedder(Embedder):
    """Embedder using SentenceTransformers library."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore
        self.model = SentenceTransformer(model_name)
        self.dimension = int(self.model.get_sentence_embedding_dimension())

    def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed texts using SentenceTransformers model."""
        arr = self.model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return [row.tolist() for row in arr]


# ----------------------------
# HTTP providers
# ----------------------------

class _GeminiValues(BaseModel):
    values: List[float] = []


class GeminiEmbedResponse(BaseModel):
    embedding: _GeminiValues = _GeminiValues()


class _OpenAIItem(BaseModel):
    embedding: List[float] = []
    index: int = 0


class OpenAIEmbedResponse(BaseModel):
    data: List[_OpenAIItem] = []


def decode_embedding(schema: type[BaseModel], data: object) -> List[float]:
    """Decode a provider response; malformed payloads decode to ``[]``."""
    try:
        parsed = schema.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Malformed embedding response: {e}")
        return []
    if isinstance(parsed, GeminiEmbedResponse):
        return parsed.embedding.values
    if isinstance(parsed, OpenAIEmbedResponse):
        return parsed.data[0].embedding if parsed.data else []
    return []


class _HTTPEmbedder(Embedder):
    """Embeds one text per request; raises ``EmbeddingError`` on any failure."""

    schema: type[BaseModel]

    def __init__(self, model: str, api_key: str, dimension: int, timeout: int = 30) -> None:
        self.model = model
        self.api_key = api_key
        self.dimension = dimension
        self.timeout = timeout
        self.session = requests.Session()

    def _request(self, text: str) -> requests.Response:
        raise NotImplementedError

    def embed(self, texts: List[str]) -> List[List[float]]:
        return [self._embed_text(t) for t in texts]

    def _embed_text(self, text: str) -> List[float]:
        try:
            response = self._request(text)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise EmbeddingError(f"{type(self).__name__} request failed: {e}") from e

        vector = decode_embedding(self.schema, data)
        if not vector:
            raise EmbeddingError(f"{type(self).__name__} returned no embedding values")
        return vector


class GeminiEmbedder(_HTTPEmbedder):
    """Embedder using the Gemini ``embedContent`` REST endpoint."""

    api_base = "https://generativelanguage.googleapis.com/v1beta"
    schema = GeminiEmbedResponse

    def _request(self, text: str) -> requests.Response:
        url = f"{self.api_base}/models/{self.model}:embedContent"
        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
            "outputDimensionality": self.dimension,
        }
        return self.session.post(
            url,
            params={"key": self.api_key},
            json=payload,
            timeout=self.timeout,
        )


class OpenAIEmbedder(_HTTPEmbedder):
    """Embedder using the OpenAI embeddings REST endpoint."""

    api_base = "https://api.openai.com/v1"
    schema = OpenAIEmbedResponse

    def _request(self, text: str) -> requests.Response:
        payload: Dict[str, object] = {"model": self.model, "input": text}
        if self.model.startswith("text-embedding-3"):
            payload["dimensions"] = self.dimension
        return self.session.post(
            f"{self.api_base}/embeddings",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json=payload,
            timeout=self.timeout,
        )


def _require_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    raise ValueError(f"{' or '.join(names)} environment variable not set")


def make_embedder(cfg: Dict) -> Embedder:
    """Create embedder from config.

    Args:
        cfg: Configuration dictionary

    Returns:
        Embedder instance

    Raises:
        ValueError: If backend is unknown or credentials are missing
    """
    emb_cfg = cfg.get("embedding", {})
    backend = str(emb_cfg.get("backend", "gemini")).strip().lower()
    model = emb_cfg.get("model")
    dimension: Optional[int] = emb_cfg.get("dimension")
    timeout = int(emb_cfg.get("timeout", 30))

    if backend == "sentence_transformers":
        return SentenceTransformersEmbedder(model or "sentence-transformers/all-MiniLM-L6-v2")
    if backend == "gemini":
        return GeminiEmbedder(
            model or "gemini-embedding-001",
            _require_env("GEMINI_API_KEY", "GOOGLE_API_KEY"),
            int(dimension or DEFAULT_DIMENSIONS["gemini"]),
            timeout,
        )
    if backend == "openai":
        return OpenAIEmbedder(
            model or "text-embedding-3-small",
            _require_env("OPENAI_API_KEY"),
            int(dimension or DEFAULT_DIMENSIONS["openai"]),
            timeout,
        )
    raise ValueError(f"Unknown embedding backend: {backend!r}")
