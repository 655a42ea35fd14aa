"""Query-time retrieval: embed, threshold-filtered search, context assembly."""

from __future__ import annotations

import dataclasses
import functools
import logging
from typing import Callable, Dict, List, Optional

import tiktoken

from ..config import DEFAULT_CONFIG
from ..core import Embedder, SearchHit, make_embedder
from ..llm import LLMClient, create_client
from ..storage import VectorStore, make_vector_store

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n---\n"
MATCH_PREVIEW_CHARS = 200


# ----------------------------
# Token estimation
# ----------------------------

@functools.lru_cache(maxsize=1)
def _get_token_counter() -> Callable[[str], int]:
    """Return a token counting function, heuristic when the encoding is unavailable."""
    try:
        encoding = tiktoken.get_encoding("cl100k_base")
    except Exception as e:
        logger.debug(f"tiktoken encoding unavailable, estimating tokens from length: {e}")
        return lambda text: max(1, int(len(text) / 3.5))
    return lambda text: len(encoding.encode(text))


def estimate_tokens(text: str) -> int:
    return _get_token_counter()(text)


# ----------------------------
# Context & prompt
# ----------------------------

def format_context_block(hit: SearchHit, preview_chars: int = 800) -> str:
    return f"File: {hit.file_path}\nScore: {hit.score:.4f}\nContent:\n{hit.content[:preview_chars]}...\n"


def build_context(hits: List[SearchHit], preview_chars: int = 800) -> str:
    """Join per-hit blocks in the store's ranking order."""
    return CONTEXT_SEPARATOR.join(format_context_block(h, preview_chars) for h in hits)


def build_prompt(query: str, context: str) -> str:
    return f'Based on the following code context, answer the question: "{query}"\n\nContext:\n{context}\n\nAnswer:'


def format_match(index: int, hit: SearchHit, preview_chars: int = MATCH_PREVIEW_CHARS) -> str:
    """Render one entry of the ranked match listing (``index`` is 1-based)."""
    size = hit.payload.get("fileSize", len(hit.content))
    lines = [
        f"--- Match {index} (Score: {hit.score:.4f}) ---",
        f"File: {hit.file_path}",
    ]
    if "startLine" in hit.payload:
        lines.append(
            f"Chunk: {hit.payload.get('type', 'file')} {hit.payload.get('name', '')} "
            f"(lines {hit.payload['startLine']}-{hit.payload.get('endLine', hit.payload['startLine'])})"
        )
    lines.append(f"Size: {size} chars")
    lines.append(f"Content preview:\n{hit.content[:preview_chars]}...")
    return "\n".join(lines)


@dataclasses.dataclass
class QueryResult:
    query: str
    threshold: float
    matches: List[SearchHit] = dataclasses.field(default_factory=list)
    context: str = ""
    prompt: str = ""
    answer: Optional[str] = None
    prompt_tokens: int = 0
    error: Optional[str] = None
    generation_error: Optional[str] = None

    @property
    def no_results(self) -> bool:
        return self.error is None and not self.matches

    def to_dict(self) -> Dict:
        data = dataclasses.asdict(self)
        data["no_results"] = self.no_results
        return data


class RetrievalEngine:
    """Answers queries against an indexed collection.

    Stateless between calls. Embedding or search failures are reported in
    ``QueryResult.error``; generation failures in ``generation_error`` while
    the ranked matches are still returned.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        generator: Optional[LLMClient] = None,
        cfg: Optional[Dict] = None,
    ):
        self.cfg = cfg if cfg is not None else DEFAULT_CONFIG
        self.embedder = embedder
        self.store = store
        self.generator = generator

        search_cfg = self.cfg.get("search", {})
        self.threshold = float(search_cfg.get("threshold", 0.40))
        self.top_k = int(search_cfg.get("top_k", 5))
        self.preview_chars = int(search_cfg.get("preview_chars", 800))

    @classmethod
    def from_config(cls, cfg: Dict) -> "RetrievalEngine":
        return cls(make_embedder(cfg), make_vector_store(cfg), create_client(cfg), cfg)

    def search(self, text: str, limit: Optional[int] = None, threshold: Optional[float] = None) -> QueryResult:
        """Ranked matches only, no generation."""
        return self.query(text, limit=limit, threshold=threshold, generate=False)

    def query(
        self,
        text: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
        generate: bool = True,
    ) -> QueryResult:
        limit = self.top_k if limit is None else limit
        threshold = self.threshold if threshold is None else threshold
        result = QueryResult(query=text, threshold=threshold)
        logger.info(f"Querying '{self.store.collection_name}': {text!r} (limit={limit}, threshold={threshold})")

        try:
            query_vector = self.embedder.embed_one(text)
            hits = self.store.search(query_vector, limit, score_threshold=threshold)
        except Exception as e:
            logger.error(f"Query failed: {e}")
            result.error = str(e)
            return result

        if not hits:
            logger.info(f"No results found above threshold {threshold}")
            return result

        result.matches = hits
        result.context = build_context(hits, self.preview_chars)
        result.prompt = build_prompt(text, result.context)
        result.prompt_tokens = estimate_tokens(result.prompt)

        if generate and self.generator is not None:
            self._generate(result)
        return result

    def _generate(self, result: QueryResult) -> None:
        try:
            response = self.generator.complete(result.prompt)
        except Exception as e:
            logger.warning(f"Answer generation failed: {e}")
            result.generation_error = str(e)
            return
        if response.error:
            result.generation_error = response.error
        else:
            result.answer = response.content
