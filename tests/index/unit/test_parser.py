"""Tests for the tree-sitter parsing adapter."""

from __future__ import annotations

import pytest

from simcheck.config.models import SimilaritySearchConfig
from simcheck.index._internal.parsing import (
    NodeKind,
    ParseError,
    ParseResult,
    Skipped,
    TreeSitterParser,
    detect_language,
)
from simcheck.index._internal.parsing.packs import get_pack_for_ext
from simcheck.index._internal.parsing.treesitter import compute_line_starts


class TestDetectLanguage:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("src/app.py", "python"),
            ("types.pyi", "python"),
            ("web/main.js", "javascript"),
            ("web/main.mjs", "javascript"),
            ("web/view.jsx", "javascript"),
            ("web/api.ts", "typescript"),
            ("web/App.tsx", "tsx"),
            ("README.md", None),
            ("Makefile", None),
        ],
    )
    def test_by_extension(self, path: str, expected: str | None) -> None:
        assert detect_language(path) == expected

    def test_ext_lookup_accepts_leading_dot(self) -> None:
        pack = get_pack_for_ext(".PY")
        assert pack is not None
        assert pack.name == "python"


class TestLineMap:
    def test_line_starts(self) -> None:
        assert compute_line_starts(b"a\nbb\n\nc") == (0, 2, 5, 6)

    def test_line_of(self, parser: TreeSitterParser) -> None:
        result = parser.parse_source("m.py", "x = 1\ny = 2\n")
        assert isinstance(result, ParseResult)

        assert result.line_of(0) == 1
        assert result.line_of(5) == 1  # the newline itself
        assert result.line_of(6) == 2


class TestParse:
    def test_python_parses(self, parser: TreeSitterParser) -> None:
        result = parser.parse_source("app.py", "def f(a):\n    return g(a)\n", "c1")

        assert isinstance(result, ParseResult)
        assert result.language == "python"
        assert result.source_file.commit_sha == "c1"
        assert result.error_count == 0
        calls = list(result.iter_nodes(NodeKind.CALL))
        assert [result.text(n) for n in calls] == ["g(a)"]

    def test_typescript_parses(self, parser: TreeSitterParser) -> None:
        result = parser.parse_source("api.ts", "export function f(a: string): void {}\n")

        assert isinstance(result, ParseResult)
        assert result.language == "typescript"
        assert len(list(result.iter_nodes(NodeKind.FUNCTION))) == 1

    def test_keyword_tokens_are_not_classified(self, parser: TreeSitterParser) -> None:
        result = parser.parse_source("m.js", "class A {}\nconst f = function () {};\n")
        assert isinstance(result, ParseResult)

        classes = list(result.iter_nodes(NodeKind.CLASS))
        functions = list(result.iter_nodes(NodeKind.FUNCTION))
        assert len(classes) == 1
        assert len(functions) == 1

    def test_unsupported_language_is_skipped(self, parser: TreeSitterParser) -> None:
        outcome = parser.parse_source("README.md", "# Title\n")

        assert isinstance(outcome, Skipped)
        assert outcome.reason == "unsupported_language"

    def test_disabled_language_is_skipped(self) -> None:
        parser = TreeSitterParser(supported_languages=frozenset({"python"}))

        outcome = parser.parse_source("main.js", "f();\n")

        assert isinstance(outcome, Skipped)
        assert outcome.reason == "unsupported_language"

    def test_large_file_is_skipped(self) -> None:
        parser = TreeSitterParser(max_file_bytes=10)

        outcome = parser.parse_source("big.py", "x = 1\n" * 10)

        assert isinstance(outcome, Skipped)
        assert outcome.reason == "too_large"
        assert outcome.size == 60

    def test_syntax_errors_above_ratio_are_parse_errors(self) -> None:
        parser = TreeSitterParser(max_error_ratio=0.0)

        outcome = parser.parse_source("broken.py", "def broken(:\n")

        assert isinstance(outcome, ParseError)
        assert outcome.path == "broken.py"
        assert "syntax errors" in outcome.reason

    def test_from_config(self) -> None:
        parser = TreeSitterParser.from_config(
            SimilaritySearchConfig(max_file_bytes=123, max_error_ratio=0.5)
        )

        assert parser.max_file_bytes == 123
        assert parser.max_error_ratio == 0.5
