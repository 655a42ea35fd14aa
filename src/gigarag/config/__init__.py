"""Configuration management for giga-rag."""

from .manager import (
    DEFAULT_CONFIG,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_EXCLUDE_PATTERNS,
    load_config,
    save_config,
    update_config,
    validate_config,
    config_summary,
    config_path,
    cfg_fingerprint,
    expand_pattern,
    expand_patterns,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_INCLUDE_PATTERNS",
    "DEFAULT_EXCLUDE_PATTERNS",
    "load_config",
    "save_config",
    "update_config",
    "validate_config",
    "config_summary",
    "config_path",
    "cfg_fingerprint",
    "expand_pattern",
    "expand_patterns",
]
