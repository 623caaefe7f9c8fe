"""Shared fixtures for review tests."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from textwrap import dedent
import pytest

from simcheck.index._internal.parsing import ParseResult, TreeSitterParser
from simcheck.index.models import (
    DefinitionKind,
    Parameter,
    ParamKind,
    ReturnUsage,
    SymbolDefinition,
    Visibility,
    compute_signature_fingerprint,
)
from simcheck.index.ops import IndexCoordinator
from simcheck.index.snapshot import IndexSnapshot, RepositoryIndex
from simcheck.review.models import CallArgument, CallSite, ResultUsage
from simcheck.review.scanner import scan_file


def _clean(source: str) -> str:
    return dedent(source).lstrip("\n")


@pytest.fixture
def parse_head() -> Callable[[str, str], ParseResult]:
    parser = TreeSitterParser()

    def _parse(path: str, source: str) -> ParseResult:
        result = parser.parse_source(path, _clean(source), "head")
        assert isinstance(result, ParseResult), result
        return result

    return _parse


@pytest.fixture
def scan(
    parse_head: Callable[[str, str], ParseResult],
) -> Callable[[str, str, Iterable[int]], list[CallSite]]:
    """Call sites of a source file touching the given (1-based) lines."""

    def _scan(path: str, source: str, lines: Iterable[int]) -> list[CallSite]:
        return scan_file(parse_head(path, source), lines)

    return _scan


@pytest.fixture
def build_snapshot() -> Callable[[Mapping[str, str]], IndexSnapshot]:
    """Index dedented sources as commit "base" and return its snapshot."""

    def _build(files: Mapping[str, str]) -> IndexSnapshot:
        coordinator = IndexCoordinator(RepositoryIndex())
        coordinator.index_commit("base", {path: _clean(src) for path, src in files.items()})
        return coordinator.index.snapshot("base")

    return _build


def param(
    name: str,
    *,
    default: bool = False,
    kind: ParamKind = ParamKind.POSITIONAL_OR_KEYWORD,
    optional: bool = False,
    declared_type: str | None = None,
) -> Parameter:
    required = not default and not optional and kind in (
        ParamKind.POSITIONAL_ONLY,
        ParamKind.POSITIONAL_OR_KEYWORD,
        ParamKind.KEYWORD_ONLY,
    )
    return Parameter(name, required, default, kind, declared_type)


def make_definition(
    qualified_name: str,
    params: Iterable[Parameter] = (),
    *,
    path: str = "src/lib.py",
    language: str = "python",
    kind: DefinitionKind = DefinitionKind.FUNCTION,
    returns: ReturnUsage = ReturnUsage.VALUE,
    container: str | None = None,
    expression_bodied: bool = False,
    is_async: bool = False,
    self_parameter: str | None = None,
    start_line: int = 1,
) -> SymbolDefinition:
    parameters = tuple(params)
    return SymbolDefinition(
        qualified_name=qualified_name,
        short_name=qualified_name.rsplit(".", 1)[-1],
        kind=kind,
        path=path,
        language=language,
        commit_sha="base",
        start_byte=start_line * 10,
        end_byte=start_line * 10 + 5,
        start_line=start_line,
        end_line=start_line + 1,
        parameters=parameters,
        return_usage=returns,
        visibility=Visibility.PUBLIC,
        signature_fingerprint=compute_signature_fingerprint(parameters),
        container=container,
        expression_bodied=expression_bodied,
        is_async=is_async,
        self_parameter=self_parameter,
    )


def make_call(
    callee: str,
    *args: str,
    path: str = "src/app.py",
    language: str = "python",
    usage: ResultUsage = ResultUsage.OTHER,
    line: int = 10,
    awaited: bool = False,
    is_constructor: bool = False,
    literals: Mapping[str, str] | None = None,
) -> CallSite:
    """Build a call site from argument texts: "x", "name=value", "*rest"."""
    arguments: list[CallArgument] = []
    for text in args:
        if text.startswith(("*", "...")):
            arguments.append(CallArgument(text=text, spread=True))
        elif "=" in text and language == "python":
            name, _, _ = text.partition("=")
            arguments.append(CallArgument(text=text, name=name.strip()))
        else:
            arguments.append(CallArgument(text=text, literal=(literals or {}).get(text)))
    receiver, _, short_name = callee.rpartition(".")
    return CallSite(
        path=path,
        language=language,
        start_line=line,
        end_line=line,
        start_byte=line * 100,
        end_byte=line * 100 + len(callee) + 2,
        callee_text=callee,
        short_name=short_name,
        receiver=receiver or None,
        arguments=tuple(arguments),
        scope_path=("app",),
        result_usage=usage,
        awaited=awaited,
        is_constructor=is_constructor,
    )


@pytest.fixture
def definition_factory() -> Callable[..., SymbolDefinition]:
    return make_definition


@pytest.fixture
def call_factory() -> Callable[..., CallSite]:
    return make_call


@pytest.fixture
def param_factory() -> Callable[..., Parameter]:
    return param
