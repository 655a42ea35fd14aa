"""Directory walking: which files get indexed."""

from __future__ import annotations

import dataclasses
import fnmatch
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from ..config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS, expand_patterns
from ..core.chunking import make_chunker
from ..core.models import SourceDocument
from ..utils import is_binary_file

logger = logging.getLogger(__name__)


def _match_any(path: str, globs: List[str]) -> bool:
    return any(fnmatch.fnmatch(path, g) for g in globs)


def iter_files(root: Path, cfg: Dict) -> Iterable[Path]:
    """Yield indexable files under ``root`` in sorted relative-path order."""
    include_globs = cfg.get("include_globs") or expand_patterns(cfg.get("include_patterns", DEFAULT_INCLUDE_PATTERNS))
    exclude_globs = cfg.get("exclude_globs") or expand_patterns(cfg.get("exclude_patterns", DEFAULT_EXCLUDE_PATTERNS))
    max_kb = int(cfg.get("max_file_size_kb", 500))
    max_files = int(cfg.get("max_files", 1000))

    candidates = sorted(
        (p for p in root.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(root).as_posix(),
    )

    yielded = 0
    for p in candidates:
        rel = p.relative_to(root).as_posix()
        if _match_any(rel, exclude_globs):
            continue
        if not _match_any(rel, include_globs):
            continue
        try:
            if (p.stat().st_size / 1024.0) > max_kb:
                logger.debug(f"Skipping {rel}: larger than {max_kb} KB")
                continue
        except OSError:
            continue
        if is_binary_file(p):
            continue
        if yielded >= max_files:
            logger.warning(f"Too many files found, limiting to {max_files}")
            return
        yielded += 1
        yield p


def list_source_files(root: Path, cfg: Dict) -> List[SourceDocument]:
    """Read every indexable file; unreadable and blank files are dropped."""
    root = Path(root)
    docs: List[SourceDocument] = []
    for fp in iter_files(root, cfg):
        rel = fp.relative_to(root).as_posix()
        try:
            text = fp.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {rel}: {e}")
            continue
        if not text.strip():
            continue
        docs.append(SourceDocument(path=rel, content=text))
    logger.info(f"Found {len(docs)} files to index under {root}")
    return docs


@dataclasses.dataclass
class ProjectStats:
    total_files: int = 0
    included_files: int = 0
    excluded_files: int = 0
    chunks: int = 0

    def to_dict(self) -> Dict:
        return dataclasses.asdict(self)


def project_stats(root: Path, cfg: Dict) -> ProjectStats:
    """Count what an index run would pick up, without embedding anything.

    ``total_files`` ignores dot-files and dot-directories. ``chunks`` is the
    exact count from the configured chunker.
    """
    root = Path(root)
    total = sum(
        1 for p in root.rglob("*")
        if p.is_file() and not any(part.startswith(".") for part in p.relative_to(root).parts)
    )
    docs = list_source_files(root, cfg)
    chunker = make_chunker(cfg)
    chunks = sum(len(chunker.chunk(doc.path, doc.content)) for doc in docs)
    return ProjectStats(
        total_files=total,
        included_files=len(docs),
        excluded_files=max(total - len(docs), 0),
        chunks=chunks,
    )
