"""Indexer Interface."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional


class Indexer:
    """Abstract base class for code indexing."""

    def index_directory(self, root: Path, on_progress: Optional[Callable] = None):
        raise NotImplementedError
