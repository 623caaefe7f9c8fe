"""Per-run review records.

Everything here is created during one review run and thrown away after
the output records are produced. Nothing is persisted between runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from simcheck.index._internal.parsing import ParseError, Skipped
from simcheck.index.models import SymbolDefinition


class ResultUsage(StrEnum):
    """What the code around a call does with its result."""

    DISCARDED = "discarded"  # expression statement
    ASSIGNED = "assigned"
    ARGUMENT = "argument"  # passed to another call
    RETURNED = "returned"
    OTHER = "other"  # conditions, operands, attribute access, ...


class ResolutionStage(StrEnum):
    QUALIFIED = "qualified"
    SAME_FILE = "same_file"
    IMPORTED = "imported"
    GLOBAL = "global"


class MismatchKind(StrEnum):
    ARITY = "ArityMismatch"
    MISSING_REQUIRED = "MissingRequiredParam"
    UNEXPECTED_ARG = "UnexpectedExtraArg"
    RETURN_MISUSE = "ReturnValueMisuse"
    AMBIGUOUS = "Ambiguous"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Lower is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.HIGH: 1, Severity.MEDIUM: 2, Severity.LOW: 3}

SEVERITY_BY_KIND: dict[MismatchKind, Severity] = {
    MismatchKind.ARITY: Severity.CRITICAL,
    MismatchKind.MISSING_REQUIRED: Severity.HIGH,
    MismatchKind.UNEXPECTED_ARG: Severity.MEDIUM,
    MismatchKind.RETURN_MISUSE: Severity.LOW,
    MismatchKind.AMBIGUOUS: Severity.LOW,
}


@dataclass(frozen=True, slots=True)
class CallArgument:
    """One argument as written at the call site."""

    text: str
    name: str | None = None  # keyword name, None for positional
    literal: str | None = None  # str | int | float | bool | None | list | dict | ...
    spread: bool = False  # *args, **kwargs, ...rest

    @property
    def is_positional(self) -> bool:
        return self.name is None and not self.spread


@dataclass(frozen=True, slots=True)
class CallSite:
    """A call expression touched by the diff."""

    path: str
    language: str
    start_line: int
    end_line: int
    start_byte: int
    end_byte: int
    callee_text: str
    short_name: str
    receiver: str | None  # "h" in h.parse(...), None for bare calls
    arguments: tuple[CallArgument, ...]
    scope_path: tuple[str, ...]  # (module, class..., function...)
    result_usage: ResultUsage = ResultUsage.OTHER
    enclosing_class: str | None = None
    awaited: bool = False
    is_constructor: bool = False  # new X(...)

    @property
    def module(self) -> str:
        return self.scope_path[0] if self.scope_path else ""

    @property
    def line_range(self) -> tuple[int, int]:
        return (self.start_line, self.end_line)

    @property
    def positional_arguments(self) -> tuple[CallArgument, ...]:
        return tuple(a for a in self.arguments if a.is_positional)

    @property
    def named_arguments(self) -> tuple[CallArgument, ...]:
        return tuple(a for a in self.arguments if a.name is not None)

    @property
    def has_spread(self) -> bool:
        return any(a.spread for a in self.arguments)

    @property
    def argument_list_text(self) -> str:
        return ", ".join(a.text for a in self.arguments)


@dataclass(frozen=True, slots=True)
class Candidate:
    """A definition the call may target, with how sure the resolver is."""

    call: CallSite
    definition: SymbolDefinition
    confidence: float
    stage: ResolutionStage


@dataclass(frozen=True, slots=True)
class Mismatch:
    """A call that breaks its definition's contract.

    For ``Ambiguous``, ``definition`` is the first candidate and
    ``alternatives`` holds every candidate (sorted by qualified name).
    """

    call: CallSite
    definition: SymbolDefinition
    kind: MismatchKind
    severity: Severity
    confidence: float
    alternatives: tuple[SymbolDefinition, ...] = ()


@dataclass(frozen=True, slots=True)
class Suggestion:
    issue: str
    fix: str
    impact: str


@dataclass(frozen=True, slots=True)
class ReviewRecord:
    """One outbound review comment."""

    file: str
    line_range: tuple[int, int]
    issue: str
    fix: str
    impact: str
    confidence: float
    kind: MismatchKind
    severity: Severity
    symbol: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line_range": list(self.line_range),
            "issue": self.issue,
            "fix": self.fix,
            "impact": self.impact,
            "confidence": round(self.confidence, 4),
            "kind": self.kind.value,
            "severity": self.severity.value,
            "symbol": self.symbol,
        }


@dataclass(frozen=True, slots=True)
class DroppedMismatch:
    """A mismatch that could not be turned into a record."""

    path: str
    line: int
    kind: MismatchKind
    reason: str


@dataclass
class RunMetadata:
    """Observability for one review run."""

    pr_id: str
    base_commit: str
    head_commit: str
    call_sites: int = 0
    candidates: int = 0
    mismatches: int = 0
    parse_errors: list[ParseError] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)
    dropped: list[DroppedMismatch] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pr_id": self.pr_id,
            "base_commit": self.base_commit,
            "head_commit": self.head_commit,
            "call_sites": self.call_sites,
            "candidates": self.candidates,
            "mismatches": self.mismatches,
            "parse_errors": [{"path": e.path, "reason": e.reason} for e in self.parse_errors],
            "skipped": [{"path": s.path, "reason": s.reason, "size": s.size} for s in self.skipped],
            "dropped": [
                {"path": d.path, "line": d.line, "kind": d.kind.value, "reason": d.reason}
                for d in self.dropped
            ],
            "duration_seconds": round(self.duration_seconds, 4),
        }


@dataclass
class ReviewResult:
    records: list[ReviewRecord]
    metadata: RunMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": [r.to_dict() for r in self.records],
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class PullRequestEvent:
    """Inbound review request from the VCS integration.

    ``file_contents`` holds the complete head-side content of every file
    the diff touches (deleted files excepted).
    """

    pr_id: str
    base_commit: str
    head_commit: str
    diff: str
    file_contents: Mapping[str, bytes | str]
