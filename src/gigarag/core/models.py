"""Data models for giga-rag."""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Literal

ChunkType = Literal["function", "class", "import", "comment", "variable", "interface", "type", "file"]


@dataclasses.dataclass(frozen=True)
class CodeChunk:
    """A contiguous, 1-based inclusive line range of a source file."""

    id: str
    content: str
    file_path: str
    type: ChunkType
    name: str
    start_line: int
    end_line: int
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def key(self) -> tuple:
        return (self.file_path, self.type, self.name, self.start_line)


@dataclasses.dataclass
class SourceDocument:
    """A file discovered by the directory walker."""

    path: str
    content: str


@dataclasses.dataclass
class VectorRecord:
    """A point ready to be upserted into the vector store."""

    id: str
    vector: List[float]
    payload: Dict[str, Any]


@dataclasses.dataclass
class SearchHit:
    """A point returned by the vector store, in the store's ranking order."""

    id: str
    score: float
    payload: Dict[str, Any]

    @property
    def file_path(self) -> str:
        return self.payload.get("filePath", "")

    @property
    def content(self) -> str:
        return self.payload.get("content", "")
