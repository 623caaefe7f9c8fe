"""Call-site resolution against a pinned index snapshot.

Resolution runs in stages and stops at the first stage that finds
anything:

1. Qualified: the receiver names a module, an imported alias, a class,
   or ``self``/``cls``/``this``: look up ``<prefix>.<name>`` (1.0).
2. Same file: short-name match among the call's own file (0.9).
3. Imported: the name is imported, or a short-name match lives in a file
   the call's file imports (0.7).
4. Global: short-name match anywhere in the index (0.4).

Several candidates from one stage are all returned; choosing between
them is never done here. A receiver or name bound to a module that is
not in the index (stdlib, third-party) resolves to nothing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from simcheck.index.models import DefinitionKind, ImportBinding, Parameter, SymbolDefinition
from simcheck.index.snapshot import IndexSnapshot
from simcheck.review.models import CallArgument, CallSite, Candidate, ResolutionStage
from simcheck.review.verifier import SELF_RECEIVERS, explicit_receiver

log = structlog.get_logger(__name__)

CONFIDENCE: dict[ResolutionStage, float] = {
    ResolutionStage.QUALIFIED: 1.0,
    ResolutionStage.SAME_FILE: 0.9,
    ResolutionStage.IMPORTED: 0.7,
    ResolutionStage.GLOBAL: 0.4,
}
TYPE_AFFINITY_BONUS = 0.05
DEFAULT_MIN_CONFIDENCE = 0.4

# literal kind -> type names it satisfies
_TYPE_NAMES: dict[str, frozenset[str]] = {
    "str": frozenset({"str", "string", "anystr", "any", "object"}),
    "int": frozenset({"int", "float", "complex", "number", "any", "object"}),
    "float": frozenset({"float", "complex", "number", "any", "object"}),
    "bool": frozenset({"bool", "int", "any", "object"}),
    "None": frozenset({"none", "optional", "any", "object"}),
    "list": frozenset({"list", "sequence", "iterable", "collection", "any", "object"}),
    "tuple": frozenset({"tuple", "sequence", "iterable", "collection", "any", "object"}),
    "set": frozenset({"set", "frozenset", "iterable", "collection", "any", "object"}),
    "dict": frozenset({"dict", "mapping", "mutablemapping", "any", "object"}),
    "string": frozenset({"string", "any", "unknown"}),
    "number": frozenset({"number", "bigint", "any", "unknown"}),
    "boolean": frozenset({"boolean", "any", "unknown"}),
    "null": frozenset({"null", "any", "unknown"}),
    "undefined": frozenset({"undefined", "void", "any", "unknown"}),
    "array": frozenset({"array", "readonlyarray", "[]", "any", "unknown"}),
    "object": frozenset({"object", "record", "any", "unknown"}),
}
_TYPE_TOKEN_RE = re.compile(r"\[\]|\w+")


def _allowed_kinds(call: CallSite) -> frozenset[DefinitionKind]:
    if call.is_constructor:
        return frozenset({DefinitionKind.CONSTRUCTOR, DefinitionKind.FUNCTION})
    if call.receiver is None:
        # Bare calls never reach methods
        return frozenset({DefinitionKind.FUNCTION, DefinitionKind.CONSTRUCTOR})
    return frozenset(DefinitionKind)


def _binding_for(imports: Iterable[ImportBinding], local_name: str) -> ImportBinding | None:
    found = None
    for binding in imports:
        if binding.local_name == local_name:
            found = binding  # last import wins, as at runtime
    return found


def _is_indexed_module(snapshot: IndexSnapshot, dotted: str) -> bool:
    parts = dotted.split(".")
    return any(snapshot.paths_for_module(".".join(parts[:i])) for i in range(len(parts), 0, -1))


def _qualified_prefixes(call: CallSite, snapshot: IndexSnapshot) -> list[str] | None:
    """Dotted prefixes the receiver may stand for, most specific first.

    Returns None when the receiver is bound to a module outside the index.
    """
    receiver = call.receiver
    if receiver is None:
        return []
    module = call.module
    prefixes: list[str] = []

    if receiver in SELF_RECEIVERS:
        if call.enclosing_class:
            prefixes.append(".".join(p for p in (module, call.enclosing_class) if p))
        return prefixes

    head, _, rest = receiver.partition(".")
    binding = _binding_for(snapshot.imports_for(call.path), head)
    if binding is not None:
        target = f"{binding.target}.{rest}" if rest else binding.target
        if not _is_indexed_module(snapshot, target):
            return None
        prefixes.append(target)
        return prefixes

    if module:
        prefixes.append(f"{module}.{receiver}")
    prefixes.append(receiver)
    return prefixes


def _type_matches(literal: str, declared: str) -> bool:
    names = _TYPE_NAMES.get(literal)
    if names is None:
        return False
    tokens = {t.lower() for t in _TYPE_TOKEN_RE.findall(declared)}
    return bool(tokens & names)


def _bind_arguments(
    arguments: tuple[CallArgument, ...], parameters: tuple[Parameter, ...]
) -> list[tuple[CallArgument, Parameter]]:
    pairs: list[tuple[CallArgument, Parameter]] = []
    positional = [p for p in parameters if p.accepts_positional]
    by_name = {p.name: p for p in parameters if p.accepts_keyword}
    i = 0
    for arg in arguments:
        if arg.spread:
            continue
        if arg.name is not None:
            param = by_name.get(arg.name)
            if param is not None:
                pairs.append((arg, param))
        elif i < len(positional):
            pairs.append((arg, positional[i]))
            i += 1
    return pairs


def type_affinity(call: CallSite, definition: SymbolDefinition) -> float:
    """Confidence bonus when every typed literal argument fits its parameter."""
    arguments = call.arguments
    if explicit_receiver(call, definition):
        first = next(i for i, a in enumerate(arguments) if a.is_positional)
        arguments = arguments[:first] + arguments[first + 1 :]
    checked = 0
    for arg, param in _bind_arguments(arguments, definition.parameters):
        if arg.literal is None or not param.declared_type:
            continue
        if not _type_matches(arg.literal, param.declared_type):
            return 0.0
        checked += 1
    return TYPE_AFFINITY_BONUS if checked else 0.0


def _candidates(
    call: CallSite,
    definitions: Iterable[SymbolDefinition],
    stage: ResolutionStage,
) -> list[Candidate]:
    allowed = _allowed_kinds(call)
    base = CONFIDENCE[stage]
    seen: set[tuple[tuple[str, str, str], str]] = set()
    candidates: list[Candidate] = []
    for definition in definitions:
        if definition.kind not in allowed or (definition.key, definition.path) in seen:
            continue
        seen.add((definition.key, definition.path))
        confidence = min(1.0, base + type_affinity(call, definition))
        candidates.append(Candidate(call, definition, confidence, stage))
    candidates.sort(
        key=lambda c: (c.definition.qualified_name, c.definition.path, c.definition.start_byte)
    )
    return candidates


def _stage_qualified(call: CallSite, snapshot: IndexSnapshot) -> list[Candidate] | None:
    prefixes = _qualified_prefixes(call, snapshot)
    if prefixes is None:
        return None
    for prefix in prefixes:
        name = f"{prefix}.{call.short_name}"
        found = _candidates(
            call, snapshot.lookup_by_qualified_name(name), ResolutionStage.QUALIFIED
        )
        if found:
            return found
    return []


def _stage_same_file(call: CallSite, snapshot: IndexSnapshot) -> list[Candidate]:
    local = [d for d in snapshot.definitions_in_file(call.path) if d.short_name == call.short_name]
    return _candidates(call, local, ResolutionStage.SAME_FILE)


def _stage_imported(call: CallSite, snapshot: IndexSnapshot) -> list[Candidate] | None:
    imports = snapshot.imports_for(call.path)
    if call.receiver is None:
        binding = _binding_for(imports, call.short_name)
        if binding is not None:
            if not _is_indexed_module(snapshot, binding.target):
                return None
            direct = _candidates(
                call, snapshot.lookup_by_qualified_name(binding.target), ResolutionStage.IMPORTED
            )
            if direct:
                return direct

    reachable: set[str] = set()
    for binding in imports:
        reachable.update(snapshot.paths_for_module(binding.module))
        if binding.is_module:
            reachable.update(snapshot.paths_for_module(binding.target))
    reachable.discard(call.path)
    if not reachable:
        return []
    matches = [d for d in snapshot.lookup_by_short_name(call.short_name) if d.path in reachable]
    return _candidates(call, matches, ResolutionStage.IMPORTED)


def _stage_global(call: CallSite, snapshot: IndexSnapshot) -> list[Candidate]:
    return _candidates(call, snapshot.lookup_by_short_name(call.short_name), ResolutionStage.GLOBAL)


def resolve(
    call: CallSite,
    index: IndexSnapshot,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> list[Candidate]:
    """
    Candidate definitions for a call, from the first stage that finds any.

    Args:
        call: Call site to resolve.
        index: Pinned snapshot to resolve against.
        min_confidence: Candidates below this are dropped.

    Returns:
        Candidates ordered by qualified name, then path. Empty when
        nothing plausible is indexed.
    """
    candidates: list[Candidate] = []
    qualified = _stage_qualified(call, index)
    if qualified is None:
        log.debug("call_external", path=call.path, line=call.start_line, callee=call.callee_text)
        return []
    candidates = qualified
    if not candidates:
        candidates = _stage_same_file(call, index)
    if not candidates:
        imported = _stage_imported(call, index)
        if imported is None:
            log.debug(
                "call_external", path=call.path, line=call.start_line, callee=call.callee_text
            )
            return []
        candidates = imported
    if not candidates:
        candidates = _stage_global(call, index)

    kept = [c for c in candidates if c.confidence >= min_confidence]
    if candidates:
        log.debug(
            "call_resolved",
            path=call.path,
            line=call.start_line,
            callee=call.callee_text,
            stage=candidates[0].stage.value,
            candidates=len(kept),
        )
    return kept
