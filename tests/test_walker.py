"""Tests for indexing.walker: file discovery."""

from gigarag.config import load_config
from gigarag.indexing import iter_files, list_source_files, project_stats
from gigarag.utils import repo_root


class TestListSourceFiles:

    def test_include_exclude_and_order(self, project):
        docs = list_source_files(project, load_config(project))

        assert [d.path for d in docs] == ["README.md", "src/alpha.ts", "src/beta.py"]
        assert docs[1].content.startswith("import { alphaUtil }")

    def test_skips_binary_and_blank_files(self, project):
        (project / "src" / "blob.py").write_bytes(b"abc\x00def")
        (project / "src" / "empty.py").write_text("   \n\n")

        paths = [d.path for d in list_source_files(project, load_config(project))]

        assert "src/blob.py" not in paths
        assert "src/empty.py" not in paths

    def test_skips_undecodable_files(self, project):
        (project / "src" / "latin.py").write_bytes("caf\xe9 = 1\n".encode("latin-1"))

        paths = [d.path for d in list_source_files(project, load_config(project))]

        assert "src/latin.py" not in paths


class TestIterFiles:

    def test_max_file_size(self, project):
        (project / "src" / "big.py").write_text("x = 1\n" * 400)
        cfg = load_config(project)
        cfg["max_file_size_kb"] = 1

        names = [p.name for p in iter_files(project, cfg)]

        assert "big.py" not in names
        assert "beta.py" in names

    def test_max_files_cap(self, project):
        cfg = load_config(project)
        cfg["max_files"] = 2

        assert len(list(iter_files(project, cfg))) == 2

    def test_works_without_expanded_globs(self, project):
        cfg = {"include_patterns": ["*.py"], "exclude_patterns": []}

        assert [p.name for p in iter_files(project, cfg)] == ["beta.py"]


class TestRepoRoot:

    def test_finds_enclosing_git_dir(self, project):
        (project / ".git").mkdir()

        assert repo_root(project / "src") == project.resolve()

    def test_falls_back_to_start(self, project):
        assert repo_root(project / "src") == (project / "src").resolve()


class TestProjectStats:

    def test_counts(self, project):
        (project / ".env").write_text("SECRET=1\n")

        stats = project_stats(project, load_config(project))

        assert stats.to_dict() == {
            "total_files": 4,
            "included_files": 3,
            "excluded_files": 1,
            "chunks": 5,
        }
