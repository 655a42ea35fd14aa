"""Utility functions for giga-rag."""

from .file_utils import is_binary_file, repo_root

__all__ = [
    "is_binary_file",
    "repo_root",
]
