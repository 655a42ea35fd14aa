"""Configuration management for giga-rag."""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)


DEFAULT_INCLUDE_PATTERNS: List[str] = [
    "*.ts", "*.tsx", "*.js", "*.jsx",
    "*.py", "*.java", "*.kt", "*.cs",
    "*.c", "*.h", "*.cpp", "*.hpp",
    "*.go", "*.rs", "*.php", "*.rb",
    "*.swift", "*.scala", "*.clj", "*.sh",
    "*.yml", "*.yaml", "*.json", "*.md", "*.txt",
]

DEFAULT_EXCLUDE_PATTERNS: List[str] = [
    ".git/**",
    ".giga/**",
    "node_modules/**",
    "dist/**",
    "build/**",
    "coverage/**",
    "target/**",
    "bin/**",
    "obj/**",
    ".next/**",
    ".nuxt/**",
    "vendor/**",
    ".venv/**",
    "venv/**",
    "__pycache__/**",
    "*.min.js",
    "*.min.css",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
]

DEFAULT_CONFIG: Dict = {
    "enabled": True,
    "max_file_size_kb": 500,
    "max_files": 1000,
    "embedding": {
        "backend": "gemini",
        "model": "gemini-embedding-001",
        "dimension": None,
        "max_chars": 25000,
        "request_delay_s": 0.1,
        "timeout": 30,
    },
    "search": {
        "threshold": 0.40,
        "top_k": 5,
        "preview_chars": 800,
    },
    "chunking": {
        "strategy": "structural",
        "fixed_max_chars": 2000,
        "fixed_overlap_chars": 200,
    },
    "indexing": {"batch_size": 10},
    "generation": {
        "backend": "gemini",
        "model": "gemini-1.5-flash",
        "max_tokens": 2048,
        "temperature": 0.0,
        "timeout": 60,
    },
    "vector_store": {
        "backend": "qdrant",
        "qdrant": {
            "host": "localhost",
            "port": 6333,
            "url": None,
            "collection": "giga_codebase",
        },
    },
    "include_patterns": DEFAULT_INCLUDE_PATTERNS,
    "exclude_patterns": DEFAULT_EXCLUDE_PATTERNS,
}

EMBEDDING_BACKENDS = ("gemini", "openai", "sentence_transformers")
CHUNKING_STRATEGIES = ("structural", "logical", "fixed")

CONFIG_DIR_NAME = ".giga"
CONFIG_FILE_NAME = "rag-config.json"


def expand_pattern(pattern: str) -> List[str]:
    """Expand pattern to include both root and nested versions.

    Examples:
        '*.py' -> ['*.py', '**/*.py']
        'venv/**' -> ['venv/**', '**/venv/**']
        '**/dist/**' -> ['dist/**', '**/dist/**']
    """
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return []

    if pattern.startswith("**/"):
        return [pattern[3:], pattern]

    if pattern.startswith("*."):
        return [pattern, "**/" + pattern]

    if "/**" in pattern:
        return [pattern, "**/" + pattern]

    return [pattern, "**/" + pattern]


def expand_patterns(patterns: List[str]) -> List[str]:
    """Expand and deduplicate patterns while preserving order."""
    out: List[str] = []
    seen: set[str] = set()
    for p in patterns:
        for ep in expand_pattern(p):
            if ep not in seen:
                seen.add(ep)
                out.append(ep)
    return out


def config_path(root: Path) -> Path:
    return Path(root) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def _deep_merge(base: Dict, override: Dict) -> Dict:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def _apply_env(config: Dict) -> None:
    qdrant = config["vector_store"]["qdrant"]
    if os.getenv("QDRANT_HOST"):
        qdrant["host"] = os.environ["QDRANT_HOST"]
    if os.getenv("QDRANT_PORT"):
        qdrant["port"] = int(os.environ["QDRANT_PORT"])
    if os.getenv("QDRANT_URL"):
        qdrant["url"] = os.environ["QDRANT_URL"]
    if os.getenv("GIGA_COLLECTION"):
        qdrant["collection"] = os.environ["GIGA_COLLECTION"]


def load_config(root: Path) -> Dict:
    """Load configuration for the project at ``root``.

    Defaults are overlaid with ``.giga/rag-config.json`` when present, then
    with environment overrides. Include/exclude patterns are expanded into
    ``include_globs``/``exclude_globs`` for the walker.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = config_path(root)
    if path.exists():
        try:
            user_cfg = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(user_cfg, dict):
                raise ValueError("top-level value must be an object")
            config = _deep_merge(config, user_cfg)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {path}, using defaults: {e}")

    _apply_env(config)

    config["include_globs"] = expand_patterns(config["include_patterns"])
    config["exclude_globs"] = expand_patterns(config["exclude_patterns"])
    return config


def save_config(config: Dict, root: Path) -> Path:
    """Persist user-facing keys to ``.giga/rag-config.json``."""
    path = config_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {k: v for k, v in config.items() if k not in ("include_globs", "exclude_globs")}
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Saved configuration to {path}")
    return path


def update_config(updates: Dict, root: Path) -> Dict:
    current = load_config(root)
    merged = _deep_merge(current, updates)
    errors = validate_config(merged)
    if errors:
        raise ValueError("Invalid configuration: " + "; ".join(errors))
    save_config(merged, root)
    return load_config(root)


def validate_config(config: Dict) -> List[str]:
    """Return a list of validation errors (empty when valid)."""
    errors: List[str] = []

    backend = config.get("embedding", {}).get("backend")
    if backend not in EMBEDDING_BACKENDS:
        errors.append(f"embedding.backend must be one of {', '.join(EMBEDDING_BACKENDS)}")

    threshold = config.get("search", {}).get("threshold")
    if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
        errors.append("search.threshold must be between 0 and 1")

    top_k = config.get("search", {}).get("top_k")
    if not isinstance(top_k, int) or not 1 <= top_k <= 50:
        errors.append("search.top_k must be between 1 and 50")

    strategy = config.get("chunking", {}).get("strategy")
    if strategy not in CHUNKING_STRATEGIES:
        errors.append(f"chunking.strategy must be one of {', '.join(CHUNKING_STRATEGIES)}")

    batch_size = config.get("indexing", {}).get("batch_size")
    if not isinstance(batch_size, int) or batch_size < 1:
        errors.append("indexing.batch_size must be a positive integer")

    for key in ("include_patterns", "exclude_patterns"):
        value = config.get(key)
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            errors.append(f"{key} must be a list of strings")

    return errors


def config_summary(config: Dict, root: Path | None = None) -> str:
    source = "defaults"
    if root is not None and config_path(root).exists():
        source = f"from {CONFIG_DIR_NAME}/{CONFIG_FILE_NAME}"
    emb = config["embedding"]
    search = config["search"]
    return "\n".join([
        f"RAG Configuration ({source}):",
        f"  Status: {'enabled' if config.get('enabled', True) else 'disabled'}",
        f"  Provider: {emb['backend']} ({emb['model']}, dim={emb.get('dimension')})",
        f"  Search Threshold: {search['threshold']}",
        f"  Max Results: {search['top_k']}",
        f"  Chunking: {config['chunking']['strategy']}",
        f"  Collection: {config['vector_store']['qdrant']['collection']}",
        f"  Include Patterns: {len(config['include_patterns'])} patterns",
        f"  Exclude Patterns: {len(config['exclude_patterns'])} patterns",
    ])


def cfg_fingerprint(cfg: Dict) -> str:
    """Generate fingerprint hash for config."""
    payload = json.dumps(cfg, sort_keys=True, ensure_ascii=False, default=str).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()
