"""
Shared test fixtures.

Vectors come from ``KeywordEmbedder``: one axis per keyword plus a small
constant axis, so cosine scores between texts are predictable without a
real embedding provider.
"""

import copy
from typing import List, Optional

import pytest

from gigarag.config import DEFAULT_CONFIG
from gigarag.core import Embedder, EmbeddingError
from gigarag.llm import LLMResponse
from gigarag.search import engine as search_engine
from gigarag.storage import CollectionError, CollectionInfo, QdrantVectorStore, VectorStore
from gigarag.core.models import SearchHit

KEYWORDS = ("alpha", "beta", "gamma")


class KeywordEmbedder(Embedder):
    """Deterministic embedder; texts containing ``fail_on`` raise ``EmbeddingError``."""

    dimension = len(KEYWORDS) + 1

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.calls: List[str] = []

    def embed(self, texts: List[str]) -> List[List[float]]:
        out = []
        for text in texts:
            self.calls.append(text)
            if self.fail_on and self.fail_on in text:
                raise EmbeddingError(f"refused: {self.fail_on}")
            lowered = text.lower()
            out.append([1.0 if k in lowered else 0.0 for k in KEYWORDS] + [0.1])
        return out


class MemoryStore(VectorStore):
    """List-backed store that records lifecycle calls."""

    def __init__(self, collection_name: str = "test_codebase", exists: bool = False):
        self.collection_name = collection_name
        self.exists = exists
        self.dimension = None
        self.records = []
        self.upsert_calls = []
        self.lifecycle = []
        self.fail_upsert = False
        self.fail_create = False

    def list_collections(self):
        return [self.collection_name] if self.exists else []

    def delete_collection(self):
        self.lifecycle.append("delete")
        self.exists = False
        self.records = []

    def create_collection(self, dimension, distance="cosine"):
        if self.fail_create:
            raise CollectionError("create refused")
        self.lifecycle.append("create")
        self.exists = True
        self.dimension = dimension

    def upsert(self, records):
        self.upsert_calls.append(list(records))
        if self.fail_upsert:
            raise ConnectionError("store unavailable")
        self.records.extend(records)

    def search(self, query_vector, limit, score_threshold=None):
        raise NotImplementedError

    def get_collection_info(self):
        if not self.exists:
            return None
        return CollectionInfo(self.collection_name, len(self.records), self.dimension, "cosine")


class StubGenerator:
    def __init__(self, content="It returns one.", error=None, raises=None):
        self.content = content
        self.error = error
        self.raises = raises
        self.prompts: List[str] = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.raises:
            raise self.raises
        if self.error:
            return LLMResponse(finish_reason="error", time_taken=0.0, error=self.error)
        return LLMResponse(content=self.content, finish_reason="stop", time_taken=0.0)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for name in ("QDRANT_HOST", "QDRANT_PORT", "QDRANT_URL", "GIGA_COLLECTION"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(search_engine, "_get_token_counter", lambda: (lambda text: len(text) // 4))


@pytest.fixture
def cfg():
    c = copy.deepcopy(DEFAULT_CONFIG)
    c["embedding"]["request_delay_s"] = 0
    c["indexing"]["batch_size"] = 10
    return c


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def qdrant_store():
    return QdrantVectorStore("test_codebase", url=":memory:")


@pytest.fixture
def project(tmp_path):
    """A small source tree whose files each mention one keyword."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "alpha.ts").write_text(
        "import { alphaUtil } from './alpha-util';\n"
        "\n"
        "export function alphaHandler() {\n"
        "  return alphaUtil;\n"
        "}\n"
    )
    (root / "src" / "beta.py").write_text(
        "import beta_support\n"
        "\n"
        "def beta_loader():\n"
        "    return beta_support.load()\n"
    )
    (root / "README.md").write_text("# Gamma project\n\nNotes about gamma.\n")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("function alpha() {}\n")
    return root


def make_hit(path: str, score: float, content: str) -> SearchHit:
    return SearchHit(id=path, score=score, payload={"filePath": path, "content": content, "fileSize": len(content)})
