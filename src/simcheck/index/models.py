"""Immutable records produced by indexing.

``SourceFile`` and ``SymbolDefinition`` are created when a commit is
indexed and are never mutated afterwards: a newer commit supersedes them
with new records. Definitions are keyed by
``(qualified_name, signature_fingerprint, commit_sha)``; several
definitions may share a short name (same-named methods, overloads).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import StrEnum


class DefinitionKind(StrEnum):
    FUNCTION = "function"
    METHOD = "method"
    CONSTRUCTOR = "constructor"


class ParamKind(StrEnum):
    """How a parameter can be bound by a caller."""

    POSITIONAL_ONLY = "positional_only"
    POSITIONAL_OR_KEYWORD = "positional_or_keyword"
    KEYWORD_ONLY = "keyword_only"
    VAR_POSITIONAL = "var_positional"  # *args, ...rest
    VAR_KEYWORD = "var_keyword"  # **kwargs


class ReturnUsage(StrEnum):
    """What a definition hands back to its caller."""

    VOID = "void"
    VALUE = "value"
    MULTIPLE = "multiple"  # tuple of values


class Visibility(StrEnum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class SourceFile:
    """One file at one commit."""

    path: str
    language: str
    content_hash: str
    commit_sha: str

    @classmethod
    def from_content(
        cls, path: str, language: str, content: bytes, commit_sha: str
    ) -> SourceFile:
        return cls(
            path=path,
            language=language,
            content_hash=compute_content_hash(content),
            commit_sha=commit_sha,
        )


@dataclass(frozen=True, slots=True)
class Parameter:
    """A declared parameter, read straight from syntax."""

    name: str
    required: bool
    has_default: bool
    kind: ParamKind = ParamKind.POSITIONAL_OR_KEYWORD
    declared_type: str | None = None

    @property
    def accepts_positional(self) -> bool:
        return self.kind in (ParamKind.POSITIONAL_ONLY, ParamKind.POSITIONAL_OR_KEYWORD)

    @property
    def accepts_keyword(self) -> bool:
        return self.kind in (ParamKind.POSITIONAL_OR_KEYWORD, ParamKind.KEYWORD_ONLY)

    @property
    def is_variadic(self) -> bool:
        return self.kind in (ParamKind.VAR_POSITIONAL, ParamKind.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class SymbolDefinition:
    """A function, method or constructor declaration and its call contract."""

    qualified_name: str
    short_name: str
    kind: DefinitionKind
    path: str
    language: str
    commit_sha: str
    start_byte: int
    end_byte: int
    start_line: int
    end_line: int
    parameters: tuple[Parameter, ...]
    return_usage: ReturnUsage
    visibility: Visibility
    signature_fingerprint: str
    container: str | None = None  # enclosing class, if any
    expression_bodied: bool = False  # body is a single returned expression
    is_async: bool = False  # calling it yields an awaitable
    self_parameter: str | None = None  # instance receiver left out of ``parameters``

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.qualified_name, self.signature_fingerprint, self.commit_sha)

    @property
    def max_positional(self) -> int | None:
        """Most positional arguments accepted, or None when a rest parameter exists."""
        if any(p.kind == ParamKind.VAR_POSITIONAL for p in self.parameters):
            return None
        return sum(1 for p in self.parameters if p.accepts_positional)

    @property
    def accepts_any_keyword(self) -> bool:
        return any(p.kind == ParamKind.VAR_KEYWORD for p in self.parameters)

    @property
    def required_parameters(self) -> tuple[Parameter, ...]:
        return tuple(p for p in self.parameters if p.required and not p.has_default)

    @property
    def location(self) -> str:
        return f"{self.path}:{self.start_line}"

    def signature_text(self) -> str:
        """Render the parameter list the way a reader would write it."""
        parts: list[str] = []
        for p in self.parameters:
            if p.kind == ParamKind.VAR_POSITIONAL:
                parts.append(f"*{p.name}" if self.language == "python" else f"...{p.name}")
            elif p.kind == ParamKind.VAR_KEYWORD:
                parts.append(f"**{p.name}")
            elif p.has_default:
                parts.append(f"{p.name}=...")
            elif not p.required:
                parts.append(f"{p.name}?")
            else:
                parts.append(p.name)
        return f"{self.short_name}({', '.join(parts)})"


@dataclass(frozen=True, slots=True)
class ImportBinding:
    """A name brought into a file's scope by an import statement.

    ``target`` is the dotted path the local name stands for: a module for
    ``import pkg.mod as m``, a symbol for ``from pkg.mod import f``.
    ``module`` is always the module the binding comes from.
    """

    local_name: str
    target: str
    module: str
    is_module: bool = False


def compute_content_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def compute_signature_fingerprint(parameters: tuple[Parameter, ...] | list[Parameter]) -> str:
    """Hash the parameter shape (kinds, names, optionality) for fast equality."""
    shape = "|".join(
        f"{p.kind.value}:{p.name}:{int(p.required)}:{int(p.has_default)}" for p in parameters
    )
    return hashlib.sha256(shape.encode()).hexdigest()[:16]
