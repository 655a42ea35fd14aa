"""Full-rebuild indexing: chunk, embed, and upsert a source tree."""

from __future__ import annotations

import dataclasses
import datetime as _dt
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from ..config import DEFAULT_CONFIG
from ..core import Chunker, CodeChunk, Embedder, SourceDocument, VectorRecord
from ..core import make_chunker, make_embedder, truncate_for_embedding
from ..storage import VectorStore, make_vector_store
from .base import Indexer
from .walker import list_source_files

logger = logging.getLogger(__name__)


class BatchUpsertError(RuntimeError):
    """A batch upsert failed. Batches are attempted once and never retried."""

    def __init__(self, batch_number: int, record_count: int, cause: Exception):
        super().__init__(f"Failed to upsert batch {batch_number} ({record_count} records): {cause}")
        self.batch_number = batch_number
        self.record_count = record_count


@dataclasses.dataclass
class IndexStats:
    files: int = 0
    chunked_files: int = 0
    skipped_files: int = 0
    chunks: int = 0
    indexed: int = 0
    failed: int = 0
    batches: int = 0
    errors: List[str] = dataclasses.field(default_factory=list)
    duration_s: float = 0.0

    def to_dict(self) -> Dict:
        return dataclasses.asdict(self)


@dataclasses.dataclass
class IndexProgress:
    """One progress event: ``document``, ``batch`` or ``done``."""

    event: str
    processed: int
    total: int
    file_path: str = ""
    batch: int = 0
    ok: bool = True
    message: str = ""

    def to_dict(self) -> Dict:
        return dataclasses.asdict(self)


ProgressCallback = Callable[[IndexProgress], None]


def _batched(items: List[CodeChunk], size: int) -> Iterable[List[CodeChunk]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def _now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z")


class EmbeddingIndexer(Indexer):
    """Rebuilds the vector collection from scratch on every run.

    Documents are processed strictly sequentially with one embedding call in
    flight at a time. Item failures (chunking, embedding) are logged and
    skipped; collection lifecycle failures and batch upsert failures abort.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        cfg: Optional[Dict] = None,
        chunker: Optional[Chunker] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg if cfg is not None else DEFAULT_CONFIG
        self.embedder = embedder
        self.store = store
        self.chunker = chunker or make_chunker(self.cfg)
        self.sleep = sleep

        emb_cfg = self.cfg.get("embedding", {})
        self.batch_size = int(self.cfg.get("indexing", {}).get("batch_size", 10))
        self.max_chars = int(emb_cfg.get("max_chars", 25000))
        self.request_delay_s = float(emb_cfg.get("request_delay_s", 0.1))

    def index_directory(self, root: Path, on_progress: Optional[ProgressCallback] = None) -> IndexStats:
        """Replace the collection's contents with the chunks found under ``root``."""
        root = Path(root)
        logger.info(f"Starting full index of {root} into '{self.store.collection_name}'")

        self._init_collection()
        documents = list_source_files(root, self.cfg)
        return self.index_documents(documents, on_progress=on_progress, recreate=False)

    def index_documents(
        self,
        documents: List[SourceDocument],
        on_progress: Optional[ProgressCallback] = None,
        recreate: bool = True,
    ) -> IndexStats:
        started = time.monotonic()
        if recreate:
            self._init_collection()

        stats = IndexStats(files=len(documents))
        chunks = self._chunk_documents(documents, stats)
        stats.chunks = len(chunks)
        total = len(chunks)
        total_batches = (total + self.batch_size - 1) // self.batch_size

        processed = 0
        for batch_number, batch in enumerate(_batched(chunks, self.batch_size), start=1):
            records: List[VectorRecord] = []
            for chunk in batch:
                processed += 1
                record = self._embed_chunk(chunk, stats)
                if record is not None:
                    records.append(record)
                self._emit(on_progress, IndexProgress(
                    event="document",
                    processed=processed,
                    total=total,
                    file_path=chunk.file_path,
                    batch=batch_number,
                    ok=record is not None,
                ))
                self.sleep(self.request_delay_s)

            if not records:
                logger.warning(f"Batch {batch_number}/{total_batches} produced no records, skipping upsert")
                continue

            try:
                self.store.upsert(records)
            except Exception as e:
                logger.error(f"Batch {batch_number}/{total_batches} upsert failed, aborting run: {e}")
                raise BatchUpsertError(batch_number, len(records), e) from e

            stats.indexed += len(records)
            stats.batches += 1
            logger.info(f"Uploaded batch {batch_number}/{total_batches} ({len(records)} records)")
            self._emit(on_progress, IndexProgress(
                event="batch",
                processed=processed,
                total=total,
                batch=batch_number,
                message=f"Uploaded {len(records)} records",
            ))

        stats.duration_s = round(time.monotonic() - started, 3)
        logger.info(
            f"Indexed {stats.indexed}/{stats.chunks} chunks from {stats.chunked_files} files "
            f"({stats.failed} failed, {stats.skipped_files} files skipped) in {stats.duration_s}s"
        )
        self._emit(on_progress, IndexProgress(
            event="done",
            processed=processed,
            total=total,
            message=f"Indexed {stats.indexed} chunks",
        ))
        return stats

    def _init_collection(self) -> None:
        try:
            self.store.recreate_collection(self.embedder.dimension)
        except Exception as e:
            logger.error(f"Failed to initialize collection '{self.store.collection_name}': {e}")
            raise

    def _chunk_documents(self, documents: List[SourceDocument], stats: IndexStats) -> List[CodeChunk]:
        chunks: List[CodeChunk] = []
        for doc in documents:
            try:
                file_chunks = self.chunker.chunk(doc.path, doc.content)
            except Exception as e:
                logger.warning(f"Failed to chunk {doc.path}, skipping: {e}")
                stats.skipped_files += 1
                stats.errors.append(f"{doc.path}: {e}")
                continue
            stats.chunked_files += 1
            chunks.extend(file_chunks)
        return chunks

    def _embed_chunk(self, chunk: CodeChunk, stats: IndexStats) -> Optional[VectorRecord]:
        text = truncate_for_embedding(chunk.content, self.max_chars)
        try:
            vector = self.embedder.embed_one(text)
        except Exception as e:
            logger.warning(f"Failed to embed {chunk.file_path}:{chunk.start_line}, skipping: {e}")
            stats.failed += 1
            stats.errors.append(f"{chunk.file_path}:{chunk.start_line}: {e}")
            return None

        return VectorRecord(
            id=str(uuid.uuid4()),
            vector=vector,
            payload={
                "content": chunk.content,
                "filePath": chunk.file_path,
                "fileSize": len(chunk.content),
                "createdAt": _now_iso(),
                "chunkId": chunk.id,
                "type": chunk.type,
                "name": chunk.name,
                "startLine": chunk.start_line,
                "endLine": chunk.end_line,
                "language": chunk.metadata.get("language", ""),
                "metadata": chunk.metadata,
            },
        )

    @staticmethod
    def _emit(on_progress: Optional[ProgressCallback], event: IndexProgress) -> None:
        if on_progress is not None:
            on_progress(event)


def build_index(root: Path, cfg: Dict, on_progress: Optional[ProgressCallback] = None) -> IndexStats:
    """Rebuild the configured collection from ``root`` (Wrapper)."""
    indexer = EmbeddingIndexer(make_embedder(cfg), make_vector_store(cfg), cfg)
    return indexer.index_directory(root, on_progress=on_progress)
