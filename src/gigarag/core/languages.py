"""Per-language header patterns for the structural chunker.

Each structured language is described by a ``LanguageSpec``: a predicate for
the leading import block, the prefixes that make a line a comment, and an
ordered list of declaration headers. Patterns are matched against the raw
line, so only column-0 declarations are found unless a pattern explicitly
allows indentation.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Pattern, Tuple

# Extension -> language tag. Languages without an entry below are chunked as
# plain text but keep their tag in chunk metadata.
EXT_TO_LANG: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".cs": "csharp",
    ".scala": "scala",
    ".clj": "clojure",
    ".sh": "shell",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".json": "json",
    ".md": "markdown",
}


def get_language_for_file(file_path: str) -> Optional[str]:
    """Get language tag from file extension, or None when unmapped."""
    _, ext = os.path.splitext(file_path)
    return EXT_TO_LANG.get(ext.lower())


# Block delimiting modes
BRACE = "brace"
INDENT = "indent"
STATEMENT = "statement"  # single line unless the header opens an unclosed brace

MetaFn = Callable[[re.Match], Dict]


@dataclass(frozen=True)
class Declaration:
    pattern: Pattern[str]
    type: str
    meta: MetaFn = lambda m: {}
    block: str = BRACE
    reject: Optional[Callable[[str, re.Match], bool]] = None

    def match(self, line: str) -> Optional[re.Match]:
        m = self.pattern.match(line)
        if m is None:
            return None
        if self.reject is not None and self.reject(line, m):
            return None
        return m


@dataclass(frozen=True)
class LanguageSpec:
    name: str
    import_pattern: Pattern[str]
    comment_prefixes: Tuple[str, ...]
    declarations: Tuple[Declaration, ...]
    block_comment: Optional[Tuple[str, str]] = None
    preamble_pattern: Optional[Pattern[str]] = None
    import_label: str = "imports"

    def is_comment(self, stripped: str) -> bool:
        return stripped.startswith(self.comment_prefixes)


def _flag(m: re.Match, group: str) -> bool:
    return bool(m.group(group))


_CONTROL_WORDS = frozenset({
    "if", "for", "while", "switch", "catch", "return", "new", "else",
    "do", "sizeof", "throw", "case", "try", "synchronized",
})


def _is_control(_line: str, m: re.Match) -> bool:
    groups = m.groupdict()
    return groups.get("name") in _CONTROL_WORDS or groups.get("ret") in _CONTROL_WORDS


def _java_method_reject(line: str, m: re.Match) -> bool:
    return "class" in line or _is_control(line, m)


_C_STYLE_COMMENTS = ("//", "/*", "*")

_SCRIPT = LanguageSpec(
    name="script",
    import_pattern=re.compile(
        r"^(?:import\b"
        r"|export\s+(?:\*|\{[^}]*\})\s+from\s"
        r"|(?:const|let|var)\s+[\w{}\s,]+=\s*require\()"
    ),
    comment_prefixes=_C_STYLE_COMMENTS,
    block_comment=("/*", "*/"),
    preamble_pattern=re.compile(r"""^['"]use (?:strict|client|server)['"];?$"""),
    declarations=(
        Declaration(
            re.compile(r"^(?P<export>export\s+)?(?:default\s+)?(?:declare\s+)?interface\s+(?P<name>\w+)"),
            "interface",
            lambda m: {"exported": _flag(m, "export")},
        ),
        Declaration(
            re.compile(r"^(?P<export>export\s+)?(?:declare\s+)?type\s+(?P<name>\w+)(?:<[^=]*>)?\s*="),
            "type",
            lambda m: {"exported": _flag(m, "export")},
            block=STATEMENT,
        ),
        Declaration(
            re.compile(
                r"^(?P<export>export\s+)?(?:default\s+)?(?:declare\s+)?"
                r"(?P<abstract>abstract\s+)?class\s+(?P<name>\w+)"
            ),
            "class",
            lambda m: {"exported": _flag(m, "export"), "abstract": _flag(m, "abstract")},
        ),
        Declaration(
            re.compile(r"^(?P<export>export\s+)?(?:default\s+)?(?P<async>async\s+)?function\s*\*?\s*(?P<name>\w+)"),
            "function",
            lambda m: {"exported": _flag(m, "export"), "async": _flag(m, "async")},
        ),
        Declaration(
            re.compile(
                r"^(?P<export>export\s+)?(?:const|let|var)\s+(?P<name>\w+)\s*(?::[^=]*)?="
                r"\s*(?P<async>async\s+)?(?:\([^)]*\)|\w+)\s*(?::[^=]*)?=>"
            ),
            "function",
            lambda m: {"exported": _flag(m, "export"), "async": _flag(m, "async")},
        ),
        Declaration(
            re.compile(r"^(?P<export>export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+(?P<name>\w+)"),
            "class",
            lambda m: {"exported": _flag(m, "export"), "type": "enum"},
        ),
        Declaration(
            re.compile(r"^(?P<export>export\s+)(?:const|let|var)\s+(?P<name>\w+)"),
            "variable",
            lambda m: {"exported": True},
            block=STATEMENT,
        ),
    ),
)

_PYTHON = LanguageSpec(
    name="python",
    import_pattern=re.compile(r"^(?:import\s+[\w.]|from\s+[\w.]+\s+import\b)"),
    comment_prefixes=("#",),
    block_comment=('"""', '"""'),
    declarations=(
        Declaration(re.compile(r"^class\s+(?P<name>\w+)"), "class", block=INDENT),
        Declaration(
            re.compile(r"^(?P<async>async\s+)?def\s+(?P<name>\w+)"),
            "function",
            lambda m: {"async": _flag(m, "async")},
            block=INDENT,
        ),
    ),
)

_JAVA = LanguageSpec(
    name="java",
    import_pattern=re.compile(r"^import\s+"),
    comment_prefixes=_C_STYLE_COMMENTS,
    block_comment=("/*", "*/"),
    preamble_pattern=re.compile(r"^package\s+[\w.]+\s*;"),
    declarations=(
        Declaration(
            re.compile(
                r"^(?P<public>public\s+)?(?:(?:final|static|sealed)\s+)*"
                r"(?P<abstract>abstract\s+)?(?:(?:final|static|sealed)\s+)*class\s+(?P<name>\w+)"
            ),
            "class",
            lambda m: {"public": _flag(m, "public"), "abstract": _flag(m, "abstract")},
        ),
        Declaration(
            re.compile(r"^(?P<public>public\s+)?(?:sealed\s+)?interface\s+(?P<name>\w+)"),
            "interface",
            lambda m: {"public": _flag(m, "public")},
        ),
        Declaration(
            re.compile(r"^(?P<public>public\s+)?enum\s+(?P<name>\w+)"),
            "class",
            lambda m: {"public": _flag(m, "public"), "type": "enum"},
        ),
        Declaration(
            re.compile(
                r"^\s*(?P<visibility>public|private|protected)?\s*(?P<static>static\s+)?"
                r"(?:(?:final|abstract|synchronized)\s+)*(?P<ret>[\w<>\[\].?]+)\s+(?P<name>\w+)\s*\("
            ),
            "function",
            lambda m: {
                "visibility": m.group("visibility") or "package",
                "static": _flag(m, "static"),
                "returnType": m.group("ret"),
            },
            reject=_java_method_reject,
        ),
    ),
)

_C = LanguageSpec(
    name="c",
    import_pattern=re.compile(r"^#\s*include\b"),
    comment_prefixes=_C_STYLE_COMMENTS,
    block_comment=("/*", "*/"),
    preamble_pattern=re.compile(r"^#\s*(?:pragma|ifndef|ifdef|define|if|endif)\b"),
    import_label="includes",
    declarations=(
        Declaration(
            re.compile(r"^(?:typedef\s+)?struct\s+(?P<name>\w+)\s*\{?\s*$"),
            "class",
            lambda m: {"type": "struct"},
        ),
        Declaration(
            re.compile(r"^(?:typedef\s+)?enum\s+(?:class\s+)?(?P<name>\w+)\s*(?::\s*\w+\s*)?\{?\s*$"),
            "class",
            lambda m: {"type": "enum"},
        ),
        Declaration(
            re.compile(r"^(?:template\s*<[^>]*>\s*)?class\s+(?P<name>\w+)"),
            "class",
        ),
        Declaration(
            re.compile(r"^(?:[\w*]+\s+)*\**(?P<name>[\w:~]+)\s*\([^)]*\)\s*(?:const\s*)?\{"),
            "function",
            reject=_is_control,
        ),
    ),
)


def _go_exported(name: str) -> bool:
    return name[:1].isupper()


_GO = LanguageSpec(
    name="go",
    import_pattern=re.compile(r"^import\b"),
    comment_prefixes=_C_STYLE_COMMENTS,
    block_comment=("/*", "*/"),
    preamble_pattern=re.compile(r"^package\s+\w+"),
    declarations=(
        Declaration(
            re.compile(r"^type\s+(?P<name>\w+)\s+struct\b"),
            "class",
            lambda m: {"type": "struct", "exported": _go_exported(m.group("name"))},
        ),
        Declaration(
            re.compile(r"^type\s+(?P<name>\w+)\s+interface\b"),
            "interface",
            lambda m: {"exported": _go_exported(m.group("name"))},
        ),
        Declaration(
            re.compile(r"^type\s+(?P<name>\w+)\b"),
            "type",
            lambda m: {"exported": _go_exported(m.group("name"))},
            block=STATEMENT,
        ),
        Declaration(
            re.compile(r"^func\s+(?:\((?P<receiver>[^)]*)\)\s*)?(?P<name>\w+)\s*[\[(]"),
            "function",
            lambda m: {
                "exported": _go_exported(m.group("name")),
                **({"receiver": m.group("receiver").strip()} if m.group("receiver") else {}),
            },
        ),
    ),
)

_RUST_VIS = r"(?P<pub>pub(?:\([\w:\s]+\))?\s+)?"

_RUST = LanguageSpec(
    name="rust",
    import_pattern=re.compile(r"^(?:pub(?:\([\w:\s]+\))?\s+)?(?:use\s+|extern\s+crate\s+|mod\s+\w+\s*;)"),
    comment_prefixes=_C_STYLE_COMMENTS,
    block_comment=("/*", "*/"),
    preamble_pattern=re.compile(r"^#!?\["),
    declarations=(
        Declaration(
            re.compile(
                r"^" + _RUST_VIS + r"(?:const\s+)?(?P<async>async\s+)?(?:unsafe\s+)?"
                r"(?:extern\s+\"[^\"]*\"\s+)?fn\s+(?P<name>\w+)"
            ),
            "function",
            lambda m: {"public": _flag(m, "pub"), "async": _flag(m, "async")},
        ),
        Declaration(
            re.compile(r"^" + _RUST_VIS + r"struct\s+(?P<name>\w+)"),
            "class",
            lambda m: {"public": _flag(m, "pub"), "type": "struct"},
        ),
        Declaration(
            re.compile(r"^" + _RUST_VIS + r"enum\s+(?P<name>\w+)"),
            "class",
            lambda m: {"public": _flag(m, "pub"), "type": "enum"},
        ),
        Declaration(
            re.compile(r"^" + _RUST_VIS + r"(?:unsafe\s+)?trait\s+(?P<name>\w+)"),
            "interface",
            lambda m: {"public": _flag(m, "pub")},
        ),
        Declaration(
            re.compile(r"^(?:unsafe\s+)?impl(?:<[^>]*>)?\s+(?:(?P<trait>[\w:]+(?:<[^>]*>)?)\s+for\s+)?(?P<name>\w+)"),
            "class",
            lambda m: {"type": "impl", **({"trait": m.group("trait")} if m.group("trait") else {})},
        ),
        Declaration(
            re.compile(r"^" + _RUST_VIS + r"type\s+(?P<name>\w+)"),
            "type",
            lambda m: {"public": _flag(m, "pub")},
            block=STATEMENT,
        ),
    ),
)

LANGUAGE_SPECS: Dict[str, LanguageSpec] = {
    "typescript": _SCRIPT,
    "javascript": _SCRIPT,
    "python": _PYTHON,
    "java": _JAVA,
    "c": _C,
    "cpp": _C,
    "go": _GO,
    "rust": _RUST,
}
