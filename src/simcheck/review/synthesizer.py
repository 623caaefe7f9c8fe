"""Template-based suggestion text for mismatches.

Every string is built from the call's argument list and the
definition's parameter list alone, so the same ``Mismatch`` always
yields the same ``Suggestion``.
"""

from __future__ import annotations

import difflib
import posixpath
from collections.abc import Callable

from simcheck.core.errors import InternalError
from simcheck.index._internal.indexing.module_mapping import path_to_module
from simcheck.index.models import ReturnUsage, SymbolDefinition
from simcheck.review.models import (
    CallArgument,
    CallSite,
    Mismatch,
    MismatchKind,
    ResultUsage,
    Suggestion,
)
from simcheck.review.verifier import (
    explicit_receiver,
    extra_positional,
    unbound_required,
    unexpected_keywords,
)


def _is_python(call: CallSite) -> bool:
    return call.language == "python"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _call_text(call: CallSite, arguments: list[str] | tuple[str, ...]) -> str:
    prefix = "new " if call.is_constructor else ""
    return f"{prefix}{call.callee_text}({', '.join(arguments)})"


def _original(call: CallSite) -> str:
    return _call_text(call, [a.text for a in call.arguments])


def _quote(items: list[str]) -> str:
    return ", ".join(f"`{item}`" for item in items)


def _definition_ref(definition: SymbolDefinition) -> str:
    return f"`{definition.signature_text()}` ({definition.location})"


# ----------------------------------------------------------------------
# Per-kind templates
# ----------------------------------------------------------------------


def _arity(mismatch: Mismatch) -> Suggestion:
    call, definition = mismatch.call, mismatch.definition
    extra = set(extra_positional(call, definition))
    kept = [a.text for i, a in enumerate(call.arguments) if i not in extra]
    removed = [call.arguments[i].text for i in sorted(extra)]
    if not removed:
        raise ValueError("call has no extra positional argument")
    limit = (definition.max_positional or 0) + explicit_receiver(call, definition)
    given = len(call.positional_arguments)

    issue = (
        f"`{call.callee_text}` is called with {_plural(given, 'positional argument')} "
        f"but {_definition_ref(definition)} accepts at most {limit}."
    )
    fix = f"Remove {_quote(removed)}: `{_call_text(call, kept)}`"
    if _is_python(call):
        impact = (
            f"Raises TypeError when this line runs: {definition.short_name}() takes "
            f"{_plural(limit, 'positional argument')} but {given} were given."
        )
    elif len(removed) == 1:
        impact = (
            f"The extra argument never reaches `{definition.short_name}` and is silently "
            "ignored; whatever the caller meant it to control has no effect."
        )
    else:
        impact = (
            f"The {len(removed)} extra arguments never reach `{definition.short_name}` and are "
            "silently ignored; whatever the caller meant them to control has no effect."
        )
    return Suggestion(issue, fix, impact)


def _missing(mismatch: Mismatch) -> Suggestion:
    call, definition = mismatch.call, mismatch.definition
    missing = unbound_required(call, definition)
    names = [p.name for p in missing]
    if not names:
        raise ValueError("call binds every required parameter")
    arguments = [a.text for a in call.arguments]

    if _is_python(call):
        positional_only = [p for p in missing if not p.accepts_keyword]
        keyword = [p for p in missing if p.accepts_keyword]
        insert_at = len(call.positional_arguments)
        added_positional = [p.name for p in positional_only]
        arguments[insert_at:insert_at] = added_positional
        arguments.extend(f"{p.name}=..." for p in keyword)
        impact = (
            f"Raises TypeError when this line runs: {definition.short_name}() missing "
            f"{_plural(len(names), 'required argument')}: {', '.join(repr(n) for n in names)}."
        )
    else:
        # Fill every slot up to the last missing one; optional gaps get `undefined`
        positional_params = [p for p in definition.parameters if p.accepts_positional]
        last = max(positional_params.index(p) for p in missing)
        for param in positional_params[len(call.positional_arguments) : last + 1]:
            arguments.append(param.name if param in missing else "undefined")
        impact = (
            f"{_quote(names)} {'is' if len(names) == 1 else 'are'} `undefined` inside "
            f"`{definition.short_name}`, which typically fails later and far from this call."
        )

    issue = (
        f"`{call.callee_text}` is called without required "
        f"{'parameter' if len(names) == 1 else 'parameters'} {_quote(names)} of "
        f"{_definition_ref(definition)}."
    )
    fix = f"Pass {_quote(names)}: `{_call_text(call, arguments)}`"
    return Suggestion(issue, fix, impact)


def _unexpected(mismatch: Mismatch) -> Suggestion:
    call, definition = mismatch.call, mismatch.definition
    unexpected = unexpected_keywords(call, definition)
    bound = {a.name for a in call.named_arguments}
    free = sorted(
        p.name for p in definition.parameters if p.accepts_keyword and p.name not in bound
    )

    renames: dict[str, str] = {}
    for name in unexpected:
        remaining = [n for n in free if n not in renames.values()]
        close = difflib.get_close_matches(name, remaining, n=1, cutoff=0.6)
        if close:
            renames[name] = close[0]

    arguments: list[str] = []
    for arg in call.arguments:
        if arg.name in renames:
            arguments.append(_rename(arg, renames[arg.name]))
        elif arg.name is not None and arg.name in unexpected:
            continue
        else:
            arguments.append(arg.text)

    actions = [f"rename `{old}` to `{new}`" for old, new in renames.items()]
    dropped = [name for name in unexpected if name not in renames]
    if dropped:
        actions.append(f"remove {_quote(dropped)}")

    issue = (
        f"{_definition_ref(definition)} has no parameter named {_quote(list(unexpected))}."
    )
    summary = "; ".join(actions)
    fix = f"{summary[:1].upper()}{summary[1:]}: `{_call_text(call, arguments)}`"
    first = unexpected[0]
    if _is_python(call):
        impact = (
            f"Raises TypeError when this line runs: {definition.short_name}() got an "
            f"unexpected keyword argument '{first}'."
        )
    else:
        impact = f"`{first}` is not a parameter of `{definition.short_name}` and is ignored."
    return Suggestion(issue, fix, impact)


def _rename(arg: CallArgument, new_name: str) -> str:
    _, _, value = arg.text.partition("=")
    return f"{new_name}={value.strip()}"


def _return_misuse(mismatch: Mismatch) -> Suggestion:
    call, definition = mismatch.call, mismatch.definition
    original = _original(call)
    nothing = "None" if _is_python(call) else "undefined"

    if definition.return_usage == ReturnUsage.VOID:
        how = "assigned" if call.result_usage == ResultUsage.ASSIGNED else "passed as an argument"
        issue = (
            f"{_definition_ref(definition)} returns nothing, but the result of "
            f"`{original}` is {how}."
        )
        fix = (
            f"Call `{original}` as its own statement and pass on the value it actually "
            f"produces, or make `{definition.short_name}` return it."
        )
        impact = f"The receiving code always gets `{nothing}`."
    else:
        target = "result = " if _is_python(call) else "const result = "
        await_prefix = "await " if call.awaited else ""
        issue = (
            f"The value returned by `{original}` is discarded, but "
            f"{_definition_ref(definition)} only computes and returns a value."
        )
        fix = f"Use the returned value: `{target}{await_prefix}{original}`"
        impact = "The call has no effect; the computed value is lost."
    return Suggestion(issue, fix, impact)


def _import_hint(call: CallSite, definition: SymbolDefinition) -> str:
    module = path_to_module(definition.path) or ""
    if definition.container:
        return f"`{definition.qualified_name}`"
    if _is_python(call):
        return f"`from {module} import {definition.short_name}`"
    stem = posixpath.splitext(definition.path)[0]
    relative = posixpath.relpath(stem, posixpath.dirname(call.path) or ".")
    if not relative.startswith("."):
        relative = f"./{relative}"
    return f"`import {{ {definition.short_name} }} from \"{relative}\"`"


def _ambiguous(mismatch: Mismatch) -> Suggestion:
    call = mismatch.call
    alternatives = mismatch.alternatives or (mismatch.definition,)
    listed = ", ".join(f"`{d.qualified_name}` ({d.location})" for d in alternatives)
    issue = (
        f"`{call.callee_text}` matches {len(alternatives)} definitions and nothing at the "
        f"call site says which: {listed}."
    )
    hints = sorted({_import_hint(call, d) for d in alternatives})
    if all(d.container is None for d in alternatives):
        fix = f"Import the intended definition explicitly, one of: {', '.join(hints)}"
    else:
        fix = f"Call through a receiver of the intended type, one of: {', '.join(hints)}"
    impact = "Contract checks were skipped for this call because its target is unknown."
    return Suggestion(issue, fix, impact)


_TEMPLATES: dict[MismatchKind, Callable[[Mismatch], Suggestion]] = {
    MismatchKind.ARITY: _arity,
    MismatchKind.MISSING_REQUIRED: _missing,
    MismatchKind.UNEXPECTED_ARG: _unexpected,
    MismatchKind.RETURN_MISUSE: _return_misuse,
    MismatchKind.AMBIGUOUS: _ambiguous,
}


def synthesize(mismatch: Mismatch) -> Suggestion:
    """
    Issue, fix and impact text for a mismatch.

    Raises:
        InternalError: if the mismatch facts are inconsistent (e.g. an
            arity mismatch with no extra argument).
    """
    template = _TEMPLATES[mismatch.kind]
    try:
        return template(mismatch)
    except (ValueError, IndexError) as e:
        raise InternalError.unexpected(
            "suggestion synthesis failed",
            kind=mismatch.kind.value,
            path=mismatch.call.path,
            line=mismatch.call.start_line,
            error=str(e),
        ) from e
