"""Tests for config.manager: layered dict configuration."""

import json

import pytest

from gigarag.config import (
    DEFAULT_CONFIG,
    cfg_fingerprint,
    config_path,
    config_summary,
    expand_pattern,
    load_config,
    save_config,
    update_config,
    validate_config,
)


class TestExpandPattern:

    def test_extension_glob(self):
        assert expand_pattern("*.py") == ["*.py", "**/*.py"]

    def test_directory_glob(self):
        assert expand_pattern("venv/**") == ["venv/**", "**/venv/**"]

    def test_already_recursive(self):
        assert expand_pattern("**/dist/**") == ["dist/**", "**/dist/**"]

    def test_blank_and_comment(self):
        assert expand_pattern("  ") == []
        assert expand_pattern("# note") == []


class TestLoadConfig:

    def test_defaults_without_file(self, tmp_path):
        cfg = load_config(tmp_path)

        assert cfg["search"]["threshold"] == 0.40
        assert cfg["search"]["top_k"] == 5
        assert cfg["vector_store"]["qdrant"]["collection"] == "giga_codebase"
        assert "**/*.ts" in cfg["include_globs"]
        assert "**/node_modules/**" in cfg["exclude_globs"]

    def test_defaults_are_not_mutated(self, tmp_path):
        cfg = load_config(tmp_path)
        cfg["search"]["threshold"] = 0.9

        assert DEFAULT_CONFIG["search"]["threshold"] == 0.40

    def test_file_overrides_are_deep_merged(self, tmp_path):
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text(json.dumps({"search": {"threshold": 0.6}}))

        cfg = load_config(tmp_path)

        assert cfg["search"]["threshold"] == 0.6
        assert cfg["search"]["top_k"] == 5

    def test_malformed_file_falls_back_to_defaults(self, tmp_path):
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text("{not json")

        cfg = load_config(tmp_path)

        assert cfg["search"]["threshold"] == 0.40

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("QDRANT_URL", "http://qdrant:6333")
        monkeypatch.setenv("QDRANT_PORT", "7000")
        monkeypatch.setenv("GIGA_COLLECTION", "other")

        qdrant = load_config(tmp_path)["vector_store"]["qdrant"]

        assert qdrant["url"] == "http://qdrant:6333"
        assert qdrant["port"] == 7000
        assert qdrant["collection"] == "other"


class TestValidateConfig:

    def test_defaults_are_valid(self):
        assert validate_config(DEFAULT_CONFIG) == []

    def test_collects_all_errors(self, cfg):
        cfg["embedding"]["backend"] = "cohere"
        cfg["search"]["threshold"] = 1.5
        cfg["search"]["top_k"] = 0
        cfg["chunking"]["strategy"] = "semantic"

        errors = validate_config(cfg)

        assert len(errors) == 4

    def test_patterns_must_be_string_lists(self, cfg):
        cfg["include_patterns"] = "*.py"

        assert validate_config(cfg) == ["include_patterns must be a list of strings"]


class TestPersistence:

    def test_save_then_load(self, tmp_path, cfg):
        cfg["search"]["top_k"] = 8
        path = save_config(cfg, tmp_path)

        assert path == tmp_path / ".giga" / "rag-config.json"
        assert "include_globs" not in json.loads(path.read_text())
        assert load_config(tmp_path)["search"]["top_k"] == 8

    def test_update_rejects_invalid(self, tmp_path):
        with pytest.raises(ValueError, match="search.top_k"):
            update_config({"search": {"top_k": 100}}, tmp_path)
        assert not config_path(tmp_path).exists()

    def test_update_persists(self, tmp_path):
        cfg = update_config({"chunking": {"strategy": "fixed"}}, tmp_path)

        assert cfg["chunking"]["strategy"] == "fixed"
        assert load_config(tmp_path)["chunking"]["strategy"] == "fixed"


class TestSummary:

    def test_summary_reports_source(self, tmp_path):
        cfg = load_config(tmp_path)
        assert "defaults" in config_summary(cfg, tmp_path)

        save_config(cfg, tmp_path)
        assert "from .giga/rag-config.json" in config_summary(cfg, tmp_path)

    def test_fingerprint_is_stable(self, cfg):
        assert cfg_fingerprint(cfg) == cfg_fingerprint(dict(cfg))
        cfg["search"]["top_k"] = 9
        assert cfg_fingerprint(cfg) != cfg_fingerprint(DEFAULT_CONFIG)
