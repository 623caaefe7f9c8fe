"""Tests for IndexCoordinator: parallel parse/extract feeding the index."""

from __future__ import annotations

import pytest

from simcheck.config.models import IndexerConfig, SimCheckConfig, SimilaritySearchConfig
from simcheck.index._internal.parsing import ParseError, Skipped, TreeSitterParser
from simcheck.index.ops import IndexCoordinator
from simcheck.index.snapshot import RepositoryIndex

UTIL_PY = "def parse(text):\n    return text.strip()\n"
APP_JS = "export function isValidUrl(url) {\n  return url.startsWith('http');\n}\n"
BROKEN_PY = "def broken(:\n"


def _coordinator(index: RepositoryIndex | None = None) -> IndexCoordinator:
    return IndexCoordinator(
        index or RepositoryIndex(),
        SimCheckConfig(indexer=IndexerConfig(max_workers=4)),
        parser=TreeSitterParser(max_error_ratio=0.0),
    )


class TestIndexCommit:
    def test_indexes_supported_files_and_publishes(self) -> None:
        coordinator = _coordinator()

        stats = coordinator.index_commit(
            "c1",
            {
                "pkg/util.py": UTIL_PY,
                "web/app.js": APP_JS.encode(),
                "README.md": "# readme\n",
                "pkg/broken.py": BROKEN_PY,
            },
        )

        assert stats.commit_sha == "c1"
        assert stats.files_indexed == 2
        assert stats.definitions == 2
        assert [e.path for e in stats.parse_errors] == ["pkg/broken.py"]
        assert [s.path for s in stats.skipped] == ["README.md"]

        snapshot = coordinator.index.snapshot("c1")
        assert [d.qualified_name for d in snapshot.lookup_by_short_name("parse")] == [
            "pkg.util.parse"
        ]
        assert snapshot.lookup_by_short_name("isValidUrl")[0].language == "javascript"
        assert "pkg/broken.py" not in snapshot
        assert "README.md" not in snapshot

    def test_next_commit_builds_on_base(self) -> None:
        coordinator = _coordinator()
        coordinator.index_commit("c1", {"pkg/util.py": UTIL_PY, "web/app.js": APP_JS})

        stats = coordinator.index_commit(
            "c2",
            {"pkg/util.py": "def parse(text, strict):\n    return text\n"},
            base_sha="c1",
            removed=["web/app.js"],
        )

        assert stats.files_removed == 1
        c2 = coordinator.index.snapshot("c2")
        assert [p.name for p in c2.lookup_by_short_name("parse")[0].parameters] == [
            "text",
            "strict",
        ]
        assert c2.lookup_by_short_name("isValidUrl") == []
        # c1 is untouched
        c1 = coordinator.index.snapshot("c1")
        assert [p.name for p in c1.lookup_by_short_name("parse")[0].parameters] == ["text"]

    def test_file_that_stops_parsing_loses_its_definitions(self) -> None:
        coordinator = _coordinator()
        coordinator.index_commit("c1", {"pkg/util.py": UTIL_PY})

        stats = coordinator.index_commit("c2", {"pkg/util.py": BROKEN_PY})

        assert len(stats.parse_errors) == 1
        assert coordinator.index.snapshot("c2").lookup_by_short_name("parse") == []

    def test_empty_commit_publishes_base(self) -> None:
        coordinator = _coordinator()
        coordinator.index_commit("c1", {"pkg/util.py": UTIL_PY})

        stats = coordinator.index_commit("c2", {})

        assert stats.files_indexed == 0
        assert len(coordinator.index.snapshot("c2")) == 1

    def test_failed_run_leaves_nothing_pending(self, monkeypatch: pytest.MonkeyPatch) -> None:
        coordinator = _coordinator()
        process_file = coordinator.process_file

        def flaky(path: str, content: bytes | str, commit_sha: str):
            if path == "pkg/b.py":
                raise RuntimeError("extractor crashed")
            return process_file(path, content, commit_sha)

        monkeypatch.setattr(coordinator, "process_file", flaky)
        with pytest.raises(RuntimeError):
            coordinator.index_commit("c1", {"pkg/a.py": UTIL_PY, "pkg/b.py": UTIL_PY})
        monkeypatch.undo()

        assert coordinator.index.discard("c1") is False
        coordinator.index_commit("c1", {"pkg/b.py": UTIL_PY})

        snapshot = coordinator.index.snapshot("c1")
        assert "pkg/a.py" not in snapshot
        assert "pkg/b.py" in snapshot


class TestAnalyzeAndOverlay:
    def test_process_file_outcomes(self) -> None:
        coordinator = _coordinator()

        result, entry = coordinator.process_file("pkg/util.py", UTIL_PY, "c1")
        assert result is not None
        assert entry.path == "pkg/util.py"  # type: ignore[union-attr]

        result, outcome = coordinator.process_file("notes.txt", "hello", "c1")
        assert result is None
        assert isinstance(outcome, Skipped)

        result, outcome = coordinator.process_file("bad.py", BROKEN_PY, "c1")
        assert result is None
        assert isinstance(outcome, ParseError)

    def test_overlay_does_not_publish(self) -> None:
        coordinator = _coordinator()
        coordinator.index_commit("base", {"pkg/util.py": UTIL_PY, "web/app.js": APP_JS})
        base = coordinator.index.snapshot("base")

        head, analysis = coordinator.overlay(
            base,
            {"pkg/util.py": "def parse(text, strict=False):\n    return text\n"},
            "head",
            removed=["web/app.js"],
        )

        assert set(analysis.results) == {"pkg/util.py"}
        assert head.commit_sha == "head"
        assert "web/app.js" not in head
        assert "web/app.js" in base
        assert coordinator.index.commits() == ["base"]

    def test_overlay_removes_files_that_fail_to_parse(self) -> None:
        coordinator = _coordinator()
        coordinator.index_commit("base", {"pkg/util.py": UTIL_PY})

        head, analysis = coordinator.overlay(
            coordinator.index.snapshot("base"), {"pkg/util.py": BROKEN_PY}, "head"
        )

        assert [e.path for e in analysis.parse_errors] == ["pkg/util.py"]
        assert head.lookup_by_short_name("parse") == []

    def test_overlay_removes_files_that_are_skipped(self) -> None:
        coordinator = IndexCoordinator(
            RepositoryIndex(),
            SimCheckConfig(similarity_search=SimilaritySearchConfig(max_file_bytes=100)),
        )
        coordinator.index_commit("base", {"pkg/util.py": UTIL_PY})
        oversized = "def parse(text, strict):\n    return text\n" + "#" * 200 + "\n"

        head, analysis = coordinator.overlay(
            coordinator.index.snapshot("base"), {"pkg/util.py": oversized}, "head"
        )

        assert [s.path for s in analysis.skipped] == ["pkg/util.py"]
        assert "pkg/util.py" not in head
        assert head.lookup_by_short_name("parse") == []
