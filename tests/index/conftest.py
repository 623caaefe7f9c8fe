"""Shared fixtures for index tests."""

from __future__ import annotations

from collections.abc import Callable
from textwrap import dedent

import pytest

from simcheck.index._internal.extraction import extract_file
from simcheck.index._internal.parsing import ParseResult, TreeSitterParser
from simcheck.index.models import (
    DefinitionKind,
    ImportBinding,
    Parameter,
    ReturnUsage,
    SourceFile,
    SymbolDefinition,
    Visibility,
    compute_signature_fingerprint,
)

ParseFn = Callable[[str, str], ParseResult]


@pytest.fixture
def parser() -> TreeSitterParser:
    return TreeSitterParser()


@pytest.fixture
def parse(parser: TreeSitterParser) -> ParseFn:
    """Parse dedented source text; fails the test if it does not parse."""

    def _parse(path: str, source: str) -> ParseResult:
        result = parser.parse_source(path, dedent(source).lstrip("\n"), "c1")
        assert isinstance(result, ParseResult), result
        return result

    return _parse


@pytest.fixture
def extract_defs(parse: ParseFn) -> Callable[[str, str], dict[str, SymbolDefinition]]:
    """Definitions of a source file keyed by qualified name."""

    def _extract(path: str, source: str) -> dict[str, SymbolDefinition]:
        return {d.qualified_name: d for d in extract_file(parse(path, source)).definitions}

    return _extract


@pytest.fixture
def extract_imports(parse: ParseFn) -> Callable[[str, str], list[ImportBinding]]:
    def _extract(path: str, source: str) -> list[ImportBinding]:
        return list(extract_file(parse(path, source)).imports)

    return _extract


def make_definition(
    qualified_name: str,
    path: str,
    commit_sha: str = "c1",
    *,
    params: tuple[Parameter, ...] = (),
    start_byte: int = 0,
) -> SymbolDefinition:
    return SymbolDefinition(
        qualified_name=qualified_name,
        short_name=qualified_name.rsplit(".", 1)[-1],
        kind=DefinitionKind.FUNCTION,
        path=path,
        language="python",
        commit_sha=commit_sha,
        start_byte=start_byte,
        end_byte=start_byte + 10,
        start_line=1,
        end_line=2,
        parameters=params,
        return_usage=ReturnUsage.VALUE,
        visibility=Visibility.PUBLIC,
        signature_fingerprint=compute_signature_fingerprint(params),
    )


def make_file(path: str, commit_sha: str = "c1", content: bytes = b"") -> SourceFile:
    return SourceFile.from_content(path, "python", content or path.encode(), commit_sha)


@pytest.fixture
def definition_factory() -> Callable[..., SymbolDefinition]:
    return make_definition


@pytest.fixture
def file_factory() -> Callable[..., SourceFile]:
    return make_file
