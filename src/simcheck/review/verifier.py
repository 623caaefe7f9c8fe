"""Contract verification of a call against a definition.

Rules, most severe first; only the first rule that fires is reported:

1. ArityMismatch: more positional arguments than the definition accepts
2. MissingRequiredParam: a required parameter is bound by no argument
3. UnexpectedExtraArg: a keyword argument names no accepted parameter
4. ReturnValueMisuse: a void result is assigned or passed on, or the
   value of a pure single-expression function is thrown away

Calls that unpack arguments (``*args``, ``**kw``, ``...rest``) skip
rules 1 and 2 because their argument count is unknown.
"""

from __future__ import annotations

from collections.abc import Sequence

from simcheck.index.models import DefinitionKind, Parameter, ReturnUsage, SymbolDefinition
from simcheck.review.models import (
    SEVERITY_BY_KIND,
    CallSite,
    Candidate,
    Mismatch,
    MismatchKind,
    ResultUsage,
)


SELF_RECEIVERS = frozenset({"self", "cls", "this"})


def explicit_receiver(call: CallSite, definition: SymbolDefinition) -> int:
    """1 when the first positional argument fills the method's ``self``, else 0.

    That is the case for a Python instance method called through its
    class, as in ``Base.save(self, x)``.
    """
    if definition.language != "python" or definition.self_parameter is None:
        return 0
    receiver = call.receiver
    if receiver is None or receiver in SELF_RECEIVERS or not definition.container:
        return 0
    if receiver.rpartition(".")[2] != definition.container.rpartition(".")[2]:
        return 0
    return 1 if call.positional_arguments else 0


def extra_positional(call: CallSite, definition: SymbolDefinition) -> tuple[int, ...]:
    """Indexes (into ``call.arguments``) of positional arguments past the last accepted slot."""
    limit = definition.max_positional
    if limit is None:
        return ()
    positions = [i for i, arg in enumerate(call.arguments) if arg.is_positional]
    return tuple(positions[limit + explicit_receiver(call, definition) :])


def unbound_required(call: CallSite, definition: SymbolDefinition) -> tuple[Parameter, ...]:
    """Required parameters that no argument binds, in declaration order."""
    positional_params = [p for p in definition.parameters if p.accepts_positional]
    given = len(call.positional_arguments) - explicit_receiver(call, definition)
    bound = {p.name for p in positional_params[:given]}
    bound.update(a.name for a in call.named_arguments if a.name is not None)
    return tuple(p for p in definition.required_parameters if p.name not in bound)


def unexpected_keywords(call: CallSite, definition: SymbolDefinition) -> tuple[str, ...]:
    """Keyword argument names the definition does not accept."""
    if definition.accepts_any_keyword:
        return ()
    accepted = {p.name for p in definition.parameters if p.accepts_keyword}
    return tuple(
        a.name for a in call.named_arguments if a.name is not None and a.name not in accepted
    )


def _misuses_return(call: CallSite, definition: SymbolDefinition) -> bool:
    if definition.kind == DefinitionKind.CONSTRUCTOR or call.is_constructor:
        return False
    if definition.is_async and not call.awaited:
        # The caller holds a coroutine/promise, never the bare result
        return False
    if definition.return_usage == ReturnUsage.VOID:
        return call.result_usage in (ResultUsage.ASSIGNED, ResultUsage.ARGUMENT)
    return call.result_usage == ResultUsage.DISCARDED and definition.expression_bodied


def _mismatch(
    call: CallSite, definition: SymbolDefinition, kind: MismatchKind, confidence: float
) -> Mismatch:
    return Mismatch(
        call=call,
        definition=definition,
        kind=kind,
        severity=SEVERITY_BY_KIND[kind],
        confidence=confidence,
    )


def verify(
    call: CallSite, definition: SymbolDefinition, confidence: float = 1.0
) -> Mismatch | None:
    """The most severe contract violation of ``call`` against ``definition``, if any."""
    if not call.has_spread:
        if extra_positional(call, definition):
            return _mismatch(call, definition, MismatchKind.ARITY, confidence)
        if unbound_required(call, definition):
            return _mismatch(call, definition, MismatchKind.MISSING_REQUIRED, confidence)
    if unexpected_keywords(call, definition):
        return _mismatch(call, definition, MismatchKind.UNEXPECTED_ARG, confidence)
    if _misuses_return(call, definition):
        return _mismatch(call, definition, MismatchKind.RETURN_MISUSE, confidence)
    return None


def verify_candidates(call: CallSite, candidates: Sequence[Candidate]) -> Mismatch | None:
    """
    Verify a call against everything the resolver found for it.

    - No candidates: nothing to say.
    - Candidates with different qualified names: an ``Ambiguous``
      advisory listing all of them. No definition is picked.
    - One qualified name (possibly an overload set): a mismatch only if
      every overload rejects the call; the first overload's is reported.
    """
    if not candidates:
        return None

    names = sorted({c.definition.qualified_name for c in candidates})
    if len(names) > 1:
        ordered = sorted(
            candidates,
            key=lambda c: (
                c.definition.qualified_name,
                c.definition.path,
                c.definition.start_byte,
            ),
        )
        return Mismatch(
            call=call,
            definition=ordered[0].definition,
            kind=MismatchKind.AMBIGUOUS,
            severity=SEVERITY_BY_KIND[MismatchKind.AMBIGUOUS],
            confidence=max(c.confidence for c in candidates),
            alternatives=tuple(c.definition for c in ordered),
        )

    first: Mismatch | None = None
    for candidate in candidates:
        mismatch = verify(call, candidate.definition, candidate.confidence)
        if mismatch is None:
            return None
        if first is None:
            first = mismatch
    return first
