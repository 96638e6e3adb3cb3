import os
from pathlib import Path

import pytest

from api_doc_gen.config import DEFAULT_EXCLUDE, DEFAULT_INCLUDE
from api_doc_gen.errors import WalkError
from api_doc_gen.parser.walker import compile_glob, matches_any, walk_sources

FIXTURES = Path(__file__).parent / "fixtures"


def _rel(root: Path, paths: list[Path]) -> list[str]:
    return [p.relative_to(root.resolve()).as_posix() for p in paths]


def _touch(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestGlobs:
    def test_double_star_spans_directories(self):
        pattern = compile_glob("**/routes/**/*.js")
        assert pattern.match("routes/a.js")
        assert pattern.match("src/routes/v1/a.js")
        assert not pattern.match("src/handlers/a.js")

    def test_single_star_stays_in_segment(self):
        assert compile_glob("*.js").match("a.js")
        assert not compile_glob("*.js").match("dir/a.js")

    def test_brace_alternation(self):
        pattern = compile_glob("**/*.{js,ts}")
        assert pattern.match("a/b.ts")
        assert pattern.match("b.js")
        assert not pattern.match("b.py")

    def test_character_class(self):
        assert compile_glob("v[0-9]/*.js").match("v2/a.js")
        assert not compile_glob("v[!0-9]/*.js").match("v2/a.js")

    def test_matches_any(self):
        assert matches_any("node_modules/x/routes/a.js", DEFAULT_EXCLUDE)
        assert matches_any("routes/users.test.js", DEFAULT_EXCLUDE)
        assert not matches_any("routes/users.js", DEFAULT_EXCLUDE)


class TestWalkSources:
    def test_fixture_project(self):
        root = FIXTURES / "project"
        files = walk_sources(root, DEFAULT_INCLUDE, DEFAULT_EXCLUDE)
        assert _rel(root, files) == [
            "controllers/health.ts",
            "routes/broken.js",
            "routes/dynamic.js",
            "routes/items.js",
            "routes/users.js",
            "routes/v2/legacy.js",
        ]

    def test_exclusion_beats_inclusion(self, tmp_path):
        _touch(tmp_path / "routes" / "a.js")
        _touch(tmp_path / "routes" / "skip.js")
        files = walk_sources(tmp_path, ["**/*.js"], ["**/skip.js"])
        assert _rel(tmp_path, files) == ["routes/a.js"]

    def test_results_are_sorted(self, tmp_path):
        for name in ("c.js", "a.js", "b/z.js", "b/a.js"):
            _touch(tmp_path / name)
        files = walk_sources(tmp_path, ["**/*.js"])
        assert _rel(tmp_path, files) == ["a.js", "b/a.js", "b/z.js", "c.js"]

    def test_missing_root(self, tmp_path):
        with pytest.raises(WalkError, match="does not exist"):
            walk_sources(tmp_path / "nope", ["**/*.js"])

    def test_root_is_a_file(self, tmp_path):
        f = _touch(tmp_path / "a.js")
        with pytest.raises(WalkError, match="not a directory"):
            walk_sources(f, ["**/*.js"])

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_cycle_terminates(self, tmp_path):
        _touch(tmp_path / "routes" / "a.js")
        (tmp_path / "routes" / "loop").symlink_to(tmp_path, target_is_directory=True)
        files = walk_sources(tmp_path, ["**/*.js"])
        assert _rel(tmp_path, files) == ["routes/a.js"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_file_reported_once(self, tmp_path):
        _touch(tmp_path / "routes" / "a.js")
        (tmp_path / "routes" / "b.js").symlink_to(tmp_path / "routes" / "a.js")
        files = walk_sources(tmp_path, ["**/*.js"])
        assert _rel(tmp_path, files) == ["routes/a.js"]
