"""Definition extraction from parsed files.

Walks declaration nodes only (functions, methods, constructors) and
emits immutable ``SymbolDefinition`` records with the parameter and
return contract read directly from syntax. No type inference is done:
declared types are recorded when the source has them and are advisory.

One extractor per language family:
- ``PythonDefinitionExtractor`` (python)
- ``JavaScriptDefinitionExtractor`` (javascript, typescript, tsx)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from simcheck.index._internal.indexing.module_mapping import path_to_module
from simcheck.index._internal.parsing.packs import NodeKind
from simcheck.index.models import (
    DefinitionKind,
    ImportBinding,
    Parameter,
    ReturnUsage,
    SymbolDefinition,
    Visibility,
    compute_signature_fingerprint,
)

if TYPE_CHECKING:
    from simcheck.index._internal.parsing.treesitter import ParseResult


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Everything the index keeps for one file."""

    definitions: tuple[SymbolDefinition, ...]
    imports: tuple[ImportBinding, ...]


@dataclass(frozen=True, slots=True)
class DeclarationInfo:
    """Family-specific facts about one declaration node."""

    name: str
    kind: DefinitionKind
    parameters: tuple[Parameter, ...]
    return_usage: ReturnUsage
    visibility: Visibility
    is_async: bool = False
    expression_bodied: bool = False
    self_parameter: str | None = None


class DefinitionExtractor(ABC):
    """Base class for per-family definition extractors."""

    @abstractmethod
    def container_name(self, result: ParseResult, node: Any) -> str | None:
        """Name a function/class node contributes to scope paths, if any."""

    @abstractmethod
    def declarations(
        self, result: ParseResult, node: Any, containers: tuple[str, ...]
    ) -> list[DeclarationInfo]:
        """Declarations introduced by a FUNCTION-kind node (may be none)."""

    @abstractmethod
    def imports(self, result: ParseResult) -> list[ImportBinding]:
        """Import bindings of the file."""

    def extract(self, result: ParseResult) -> ExtractionResult:
        module = module_for(result)
        definitions: list[SymbolDefinition] = []

        for node, containers in self._walk_declarations(result):
            for info in self.declarations(result, node, containers):
                definitions.append(_build_definition(result, node, module, containers, info))

        definitions.sort(key=lambda d: (d.start_byte, d.qualified_name, d.kind.value))
        return ExtractionResult(
            definitions=tuple(definitions),
            imports=tuple(self.imports(result)),
        )

    def _walk_declarations(self, result: ParseResult) -> Iterator[tuple[Any, tuple[str, ...]]]:
        """Yield FUNCTION nodes with the container names enclosing them."""
        stack: list[tuple[Any, tuple[str, ...]]] = [(result.root, ())]
        while stack:
            node, containers = stack.pop()
            kind = result.kind_of(node)
            child_containers = containers
            if kind == NodeKind.FUNCTION:
                yield node, containers
            if kind in (NodeKind.FUNCTION, NodeKind.CLASS):
                name = self.container_name(result, node)
                if name:
                    child_containers = (*containers, name)
            stack.extend((child, child_containers) for child in reversed(node.children))


def _build_definition(
    result: ParseResult,
    node: Any,
    module: str,
    containers: tuple[str, ...],
    info: DeclarationInfo,
) -> SymbolDefinition:
    if info.kind == DefinitionKind.CONSTRUCTOR:
        # Called by its class name: Invoice(...), new Invoice(...)
        qualified_parts = [module, *containers]
    else:
        qualified_parts = [module, *containers, info.name]
    return SymbolDefinition(
        qualified_name=".".join(p for p in qualified_parts if p),
        short_name=info.name,
        kind=info.kind,
        path=result.path,
        language=result.language,
        commit_sha=result.source_file.commit_sha,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        start_line=node.start_point[0] + 1,
        end_line=node.end_point[0] + 1,
        parameters=info.parameters,
        return_usage=info.return_usage,
        visibility=info.visibility,
        signature_fingerprint=compute_signature_fingerprint(info.parameters),
        container=containers[-1] if containers else None,
        expression_bodied=info.expression_bodied,
        is_async=info.is_async,
        self_parameter=info.self_parameter,
    )


def module_for(result: ParseResult) -> str:
    return path_to_module(result.path) or ""


def descendants_outside_nested_scopes(result: ParseResult, body: Any) -> Iterator[Any]:
    """Walk a function body without descending into nested functions/classes."""
    stack = list(reversed(body.children))
    while stack:
        node = stack.pop()
        yield node
        if result.kind_of(node) in (NodeKind.FUNCTION, NodeKind.CLASS, NodeKind.LAMBDA):
            continue
        stack.extend(reversed(node.children))


def get_extractor(family: str) -> DefinitionExtractor:
    if family == "python":
        from simcheck.index._internal.extraction.python import PythonDefinitionExtractor

        return PythonDefinitionExtractor()
    if family == "javascript":
        from simcheck.index._internal.extraction.javascript import (
            JavaScriptDefinitionExtractor,
        )

        return JavaScriptDefinitionExtractor()
    raise ValueError(f"No extractor for language family: {family}")


def extract_file(result: ParseResult) -> ExtractionResult:
    """Definitions and import bindings for one parsed file."""
    return get_extractor(result.pack.family).extract(result)


def extract(result: ParseResult) -> list[SymbolDefinition]:
    """Definitions for one parsed file, in source order."""
    return list(extract_file(result).definitions)


def scope_path(result: ParseResult, node: Any) -> tuple[str, ...]:
    """Enclosing scope path of a node: (module, class..., function...).

    Built by walking parents upward to each declaration ancestor.
    """
    extractor = get_extractor(result.pack.family)
    names: list[str] = []
    current = node.parent
    while current is not None:
        if result.kind_of(current) in (NodeKind.FUNCTION, NodeKind.CLASS):
            name = extractor.container_name(result, current)
            if name:
                names.append(name)
        current = current.parent
    module = module_for(result)
    return (module, *reversed(names))


def enclosing_class(result: ParseResult, node: Any) -> str | None:
    """Qualified-name suffix (Outer.Inner) of the nearest enclosing class."""
    extractor = get_extractor(result.pack.family)
    classes: list[str] = []
    current = node.parent
    found = False
    while current is not None:
        kind = result.kind_of(current)
        if kind == NodeKind.CLASS:
            name = extractor.container_name(result, current)
            if name:
                classes.append(name)
                found = True
        elif kind == NodeKind.FUNCTION and found:
            # function enclosing the class: keep collecting for the qualified path
            name = extractor.container_name(result, current)
            if name:
                classes.append(name)
        current = current.parent
    if not found:
        return None
    return ".".join(reversed(classes))


__all__ = [
    "DeclarationInfo",
    "DefinitionExtractor",
    "ExtractionResult",
    "descendants_outside_nested_scopes",
    "enclosing_class",
    "extract",
    "extract_file",
    "get_extractor",
    "module_for",
    "scope_path",
]
