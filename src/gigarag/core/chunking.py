"""Text chunking logic for source files using heuristic structural scanning.

The structural chunker is a line/regex scanner, not a parser. Block bodies are
delimited either by counting braces character by character or by comparing
indentation. Brace counting does not understand string or comment literals:
a ``{`` inside a string literal is counted like any other. This is a known
limitation of the heuristic and is kept as-is.
"""

from __future__ import annotations

import base64
import json
import logging
import os
import re
from typing import Dict, List, Optional, Tuple

from .languages import BRACE, INDENT, LANGUAGE_SPECS, LanguageSpec, get_language_for_file
from .models import CodeChunk

logger = logging.getLogger(__name__)

PLAIN_TEXT_SINGLE_CHUNK_LINES = 100
PLAIN_TEXT_WINDOW_LINES = 50

_MARKDOWN_HEADING = re.compile(r"^#{1,6}(?:\s|$)")
_MARKDOWN_FENCE = re.compile(r"^\s*(```|~~~)")


def split_lines(content: str) -> List[str]:
    """Split on ``\\n``; a single trailing newline does not start a new line."""
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def chunk_id(file_path: str, type_: str, name: str, start_line: int) -> str:
    """Short deterministic token. Collisions are possible and tolerated."""
    identifier = f"{os.path.basename(file_path)}_{type_}_{name}_{start_line}"
    return base64.b64encode(identifier.encode("utf-8")).decode("ascii")[:16]


def make_chunk(
    file_path: str,
    type_: str,
    lines: List[str],
    start_line: int,
    end_line: int,
    name: str,
    language: str,
    metadata: Optional[Dict] = None,
) -> CodeChunk:
    """Build a chunk from 1-based inclusive line numbers."""
    raw = "\n".join(lines[start_line - 1:end_line])
    return CodeChunk(
        id=chunk_id(file_path, type_, name, start_line),
        content=raw.strip(),
        file_path=file_path,
        type=type_,
        name=name,
        start_line=start_line,
        end_line=end_line,
        metadata={"language": language, "size": len(raw), **(metadata or {})},
    )


# -----------------------------------------------------------------------------
# Block delimiting
# -----------------------------------------------------------------------------

def find_brace_block_end(lines: List[str], start: int, open_char: str = "{", close_char: str = "}") -> int:
    """Return the 0-based line where brace depth returns to zero.

    Scanning starts at ``start``. The block must have been opened at least
    once. A header that reaches ``;`` before any opening brace is a bodiless
    declaration and ends on its own line; this departs from plain brace
    counting on purpose so overload signatures such as
    ``export function f(a): void;`` do not swallow the implementation below
    them. An unterminated block also ends on the header line.
    """
    depth = 0
    found_open = False
    for i in range(start, len(lines)):
        for ch in lines[i]:
            if ch == open_char:
                depth += 1
                found_open = True
            elif ch == close_char:
                depth -= 1
                if depth == 0 and found_open:
                    return i
            elif ch == ";" and i == start and not found_open:
                return start
    return start


def find_indent_block_end(lines: List[str], start: int, comment_prefix: str = "#") -> int:
    """Return the 0-based last line of an indentation-delimited block.

    Blank and comment-only lines are absorbed unconditionally; any other line
    indented deeper than the header is absorbed; the first line at or below
    the header's indentation ends the block.
    """
    base = _indent(lines[start])
    end = start
    for i in range(start + 1, len(lines)):
        stripped = lines[i].strip()
        if not stripped or stripped.startswith(comment_prefix):
            end = i
            continue
        if _indent(lines[i]) <= base:
            break
        end = i
    return end


def find_statement_end(lines: List[str], start: int) -> int:
    header = lines[start]
    if "{" in header and "}" not in header:
        return find_brace_block_end(lines, start)
    return start


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _group_end(lines: List[str], start: int) -> int:
    """Extend an import line whose ``(`` or ``{`` group is left open."""
    depth = 0
    for i in range(start, len(lines)):
        line = lines[i]
        depth += line.count("(") + line.count("{") - line.count(")") - line.count("}")
        if depth <= 0:
            return i
    return start


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------

class Chunker:
    """Abstract base class for chunking a single file."""

    def chunk(self, file_path: str, content: str) -> List[CodeChunk]:
        """Chunk file content into an ordered list of chunks."""
        raise NotImplementedError


class StructuralChunker(Chunker):
    """Segments source files into declarations, import blocks and sections.

    ``parse`` is total: any internal failure degrades to the plain-text
    fallback, so every file yields at least one chunk.
    """

    def chunk(self, file_path: str, content: str) -> List[CodeChunk]:
        return self.parse(file_path, content)

    def parse(self, file_path: str, content: str) -> List[CodeChunk]:
        language = get_language_for_file(file_path)
        lines = split_lines(content)
        try:
            if language in LANGUAGE_SPECS:
                return self._parse_structured(file_path, content, lines, language)
            if language == "markdown":
                return self._parse_markdown(file_path, content, lines)
            if language == "json":
                return self._parse_json(file_path, content, lines)
        except Exception as e:
            logger.warning(f"Structural parsing failed for {file_path}, using plain text: {e}")
        return self._parse_plain_text(file_path, lines, language or "text")

    # -- structured languages -------------------------------------------------

    def _parse_structured(self, file_path: str, content: str, lines: List[str], language: str) -> List[CodeChunk]:
        spec = LANGUAGE_SPECS[language]
        chunks: List[CodeChunk] = []

        i = 0
        imports = self._leading_imports(lines, spec)
        if imports is not None:
            first, last = imports
            chunks.append(make_chunk(file_path, "import", lines, first + 1, last + 1, spec.import_label, language))
            i = last + 1

        while i < len(lines):
            found = self._match_declaration(lines[i], spec)
            if found is None:
                i += 1
                continue
            decl, match = found
            if decl.block == INDENT:
                end = find_indent_block_end(lines, i, spec.comment_prefixes[0])
            elif decl.block == BRACE:
                end = find_brace_block_end(lines, i)
            else:
                end = find_statement_end(lines, i)
            chunks.append(make_chunk(
                file_path, decl.type, lines, i + 1, end + 1,
                match.group("name"), language, decl.meta(match),
            ))
            i = end + 1

        if not chunks:
            chunks.append(make_chunk(file_path, "file", lines, 1, len(lines), "complete-file", language))
        logger.debug(f"{file_path}: {len(chunks)} structural chunks ({language})")
        return chunks

    @staticmethod
    def _match_declaration(line: str, spec: LanguageSpec):
        for decl in spec.declarations:
            m = decl.match(line)
            if m is not None:
                return decl, m
        return None

    @staticmethod
    def _leading_imports(lines: List[str], spec: LanguageSpec) -> Optional[Tuple[int, int]]:
        """Locate the leading import run as 0-based (first, last) lines.

        Blank lines, comments and language preamble (package clauses, header
        guards, module docstrings) are tolerated inside or before the run.
        """
        first: Optional[int] = None
        last = -1
        i = 0
        while i < len(lines):
            stripped = lines[i].strip()
            if spec.import_pattern.match(stripped):
                if first is None:
                    first = i
                last = _group_end(lines, i)
                i = last + 1
                continue
            if spec.block_comment and stripped.startswith(spec.block_comment[0]):
                opener, closer = spec.block_comment
                if closer not in stripped[len(opener):]:
                    while i + 1 < len(lines) and closer not in lines[i + 1]:
                        i += 1
                    i += 1
                i += 1
                continue
            if not stripped or spec.is_comment(stripped):
                i += 1
                continue
            if spec.preamble_pattern is not None and spec.preamble_pattern.match(stripped):
                i += 1
                continue
            break
        if first is None:
            return None
        return first, last

    # -- markdown / json / plain text -----------------------------------------

    def _parse_markdown(self, file_path: str, content: str, lines: List[str]) -> List[CodeChunk]:
        """Split at ATX headings (``#`` to ``######`` plus a space or end of line).

        Unlike a bare ``startswith("#")`` split, ``#`` lines inside fenced code
        blocks and ``#tag`` lines do not start a section.
        """
        chunks: List[CodeChunk] = []
        section_start = 0
        section_name = "introduction"
        in_fence = False

        for i, line in enumerate(lines):
            if _MARKDOWN_FENCE.match(line):
                in_fence = not in_fence
                continue
            if in_fence or not _MARKDOWN_HEADING.match(line):
                continue
            if "\n".join(lines[section_start:i]).strip():
                chunks.append(make_chunk(file_path, "comment", lines, section_start + 1, i, section_name, "markdown"))
            section_start = i
            section_name = re.sub(r"^#+\s*", "", line).strip() or f"header-{i + 1}"

        if "\n".join(lines[section_start:]).strip():
            chunks.append(make_chunk(
                file_path, "comment", lines, section_start + 1, len(lines), section_name, "markdown",
            ))

        if not chunks:
            chunks.append(make_chunk(file_path, "file", lines, 1, len(lines), "markdown-content", "markdown"))
        return chunks

    def _parse_json(self, file_path: str, content: str, lines: List[str]) -> List[CodeChunk]:
        try:
            parsed = json.loads(content)
        except ValueError:
            return self._parse_plain_text(file_path, lines, "json")

        if isinstance(parsed, list):
            label = "json-array"
        elif isinstance(parsed, dict):
            label = "json-object"
        else:
            label = "json-value"
        return [make_chunk(file_path, "file", lines, 1, len(lines), label, "json")]

    @staticmethod
    def _parse_plain_text(file_path: str, lines: List[str], language: str) -> List[CodeChunk]:
        total = len(lines)
        if total < PLAIN_TEXT_SINGLE_CHUNK_LINES:
            return [make_chunk(file_path, "file", lines, 1, total, "text-file", language)]

        chunks: List[CodeChunk] = []
        for start in range(0, total, PLAIN_TEXT_WINDOW_LINES):
            end = min(start + PLAIN_TEXT_WINDOW_LINES, total)
            name = f"chunk-{start // PLAIN_TEXT_WINDOW_LINES + 1}"
            chunks.append(make_chunk(file_path, "file", lines, start + 1, end, name, language))
        return chunks


class FixedWindowChunker(Chunker):
    """Character windows with overlap, independent of structure."""

    def __init__(self, max_chars: int = 2000, overlap: int = 200, newline_slack: int = 100):
        if overlap >= max_chars:
            raise ValueError("overlap must be smaller than max_chars")
        self.max_chars = max_chars
        self.overlap = overlap
        self.newline_slack = newline_slack

    def chunk(self, file_path: str, content: str) -> List[CodeChunk]:
        language = get_language_for_file(file_path) or "text"
        base_meta = {"language": language, "chunkingStrategy": "fixed"}

        if len(content) <= self.max_chars:
            return [CodeChunk(
                id=chunk_id(file_path, "file", "complete", 1),
                content=content,
                file_path=file_path,
                type="file",
                name="complete",
                start_line=1,
                end_line=len(split_lines(content)),
                metadata={**base_meta, "size": len(content)},
            )]

        chunks: List[CodeChunk] = []
        pos = 0
        index = 1
        total = len(content)
        while pos < total:
            end = min(pos + self.max_chars, total)
            if end < total:
                newline = content.find("\n", end)
                if newline != -1 and newline - end < self.newline_slack:
                    end = newline
            text = content[pos:end]
            start_line = content.count("\n", 0, pos) + 1
            end_line = max(start_line, content.count("\n", 0, end) + 1)
            name = f"chunk-{index}"
            chunks.append(CodeChunk(
                id=chunk_id(file_path, "file", name, start_line),
                content=text,
                file_path=file_path,
                type="file",
                name=name,
                start_line=start_line,
                end_line=end_line,
                metadata={**base_meta, "size": len(text), "chunkIndex": index},
            ))
            if end >= total:
                break
            pos = max(end - self.overlap, pos + 1)
            index += 1

        for c in chunks:
            c.metadata["totalChunks"] = len(chunks)
        return chunks


def make_chunker(cfg: Dict) -> Chunker:
    """Create chunker from config ``chunking.strategy``."""
    chunking = cfg.get("chunking", {})
    strategy = str(chunking.get("strategy", "structural")).strip().lower()
    if strategy in ("structural", "logical"):
        return StructuralChunker()
    if strategy == "fixed":
        return FixedWindowChunker(
            max_chars=int(chunking.get("fixed_max_chars", 2000)),
            overlap=int(chunking.get("fixed_overlap_chars", 200)),
        )
    raise ValueError(f"Unknown chunking strategy: {strategy!r}")


def parse_file(file_path: str, content: str) -> List[CodeChunk]:
    """Structurally chunk one file (Functional Wrapper)."""
    return StructuralChunker().parse(file_path, content)
