"""Diff-scoped call-site scanning.

Only call expressions that touch an added line of the diff are emitted,
so review cost follows the size of the change. A call whose only changed
lines sit inside a callback body it receives is not emitted itself: the
calls inside that body are.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from simcheck.index._internal.extraction import enclosing_class, scope_path
from simcheck.index._internal.parsing import NodeKind, ParseResult
from simcheck.review.models import CallArgument, CallSite, ResultUsage

if TYPE_CHECKING:
    from simcheck.review.cancellation import CancellationToken
    from simcheck.review.diff import UnifiedDiff

log = structlog.get_logger(__name__)

_TRANSPARENT = frozenset({"parenthesized_expression", "await", "await_expression"})

_USAGE_BY_PARENT: dict[str, ResultUsage] = {
    "expression_statement": ResultUsage.DISCARDED,
    # python
    "assignment": ResultUsage.ASSIGNED,
    "augmented_assignment": ResultUsage.ASSIGNED,
    "named_expression": ResultUsage.ASSIGNED,
    "argument_list": ResultUsage.ARGUMENT,
    "keyword_argument": ResultUsage.ARGUMENT,
    "lambda": ResultUsage.RETURNED,
    # javascript / typescript
    "variable_declarator": ResultUsage.ASSIGNED,
    "assignment_expression": ResultUsage.ASSIGNED,
    "augmented_assignment_expression": ResultUsage.ASSIGNED,
    "arguments": ResultUsage.ARGUMENT,
    "arrow_function": ResultUsage.RETURNED,
    # both
    "return_statement": ResultUsage.RETURNED,
}

_PYTHON_LITERALS = {
    "string": "str",
    "concatenated_string": "str",
    "integer": "int",
    "float": "float",
    "true": "bool",
    "false": "bool",
    "none": "None",
    "list": "list",
    "dictionary": "dict",
    "tuple": "tuple",
    "set": "set",
}

_JS_LITERALS = {
    "string": "string",
    "template_string": "string",
    "number": "number",
    "true": "boolean",
    "false": "boolean",
    "null": "null",
    "undefined": "undefined",
    "array": "array",
    "object": "object",
}


def _callee_parts(result: ParseResult, callee: Any) -> tuple[str, str | None] | None:
    """(short name, receiver text) of a callee expression, or None if unnamed."""
    if callee.type == "identifier":
        return result.text(callee), None
    if callee.type == "attribute":
        obj = callee.child_by_field_name("object")
        attr = callee.child_by_field_name("attribute")
        if attr is None:
            return None
        return result.text(attr), result.text(obj) if obj is not None else None
    if callee.type == "member_expression":
        obj = callee.child_by_field_name("object")
        prop = callee.child_by_field_name("property")
        if prop is None:
            return None
        return result.text(prop), result.text(obj) if obj is not None else None
    return None


def _literal_kind(result: ParseResult, node: Any) -> str | None:
    table = _PYTHON_LITERALS if result.pack.family == "python" else _JS_LITERALS
    return table.get(node.type)


def _arguments(result: ParseResult, args_node: Any | None) -> tuple[CallArgument, ...]:
    if args_node is None:
        return ()
    if args_node.type == "generator_expression":
        # f(x for x in y)
        return (CallArgument(text=result.text(args_node)),)

    arguments: list[CallArgument] = []
    for child in args_node.named_children:
        t = child.type
        if t == "comment":
            continue
        if t == "keyword_argument":
            name = child.child_by_field_name("name")
            value = child.child_by_field_name("value")
            arguments.append(
                CallArgument(
                    text=result.text(child),
                    name=result.text(name) if name is not None else None,
                    literal=_literal_kind(result, value) if value is not None else None,
                )
            )
        elif t in ("list_splat", "dictionary_splat", "spread_element"):
            arguments.append(CallArgument(text=result.text(child), spread=True))
        else:
            arguments.append(
                CallArgument(text=result.text(child), literal=_literal_kind(result, child))
            )
    return tuple(arguments)


def _result_usage(node: Any) -> tuple[ResultUsage, bool]:
    """Classify what the parent syntax does with a call's value."""
    awaited = False
    current = node
    parent = node.parent
    while parent is not None and parent.type in _TRANSPARENT:
        if parent.type in ("await", "await_expression"):
            awaited = True
        current = parent
        parent = parent.parent
    if parent is None:
        return ResultUsage.OTHER, awaited

    usage = _USAGE_BY_PARENT.get(parent.type, ResultUsage.OTHER)
    if usage == ResultUsage.ASSIGNED:
        # Only the value side counts: f().x = 1 is not an assignment of f()
        for field_name in ("right", "value"):
            value = parent.child_by_field_name(field_name)
            if value is not None:
                if value.id != current.id:
                    return ResultUsage.OTHER, awaited
                break
    elif usage == ResultUsage.RETURNED and parent.type in ("lambda", "arrow_function"):
        body = parent.child_by_field_name("body")
        if body is None or body.id != current.id:
            return ResultUsage.OTHER, awaited
    return usage, awaited


def _own_lines(result: ParseResult, node: Any, args_node: Any | None) -> list[int]:
    """Lines of a call, minus the interior of callback bodies passed to it."""
    start = result.line_of(node.start_byte)
    end = result.line_of(max(node.start_byte, node.end_byte - 1))
    excluded: set[int] = set()
    if args_node is not None:
        for arg in args_node.named_children:
            if result.kind_of(arg) in (NodeKind.FUNCTION, NodeKind.LAMBDA):
                inner_start = result.line_of(arg.start_byte) + 1
                inner_end = result.line_of(max(arg.start_byte, arg.end_byte - 1)) - 1
                excluded.update(range(inner_start, inner_end + 1))
    return [line for line in range(start, end + 1) if line not in excluded]


def _touches(lines: Iterable[int], added: list[int]) -> bool:
    for line in lines:
        i = bisect.bisect_left(added, line)
        if i < len(added) and added[i] == line:
            return True
    return False


def build_call_site(result: ParseResult, node: Any) -> CallSite | None:
    """Build a CallSite for one call node, or None when the callee has no name."""
    is_constructor = node.type == "new_expression"
    callee = node.child_by_field_name("constructor" if is_constructor else "function")
    if callee is None:
        return None
    parts = _callee_parts(result, callee)
    if parts is None:
        return None
    short_name, receiver = parts

    args_node = node.child_by_field_name("arguments")
    if args_node is not None and args_node.type == "template_string":
        # Tagged template: tag`...`
        return None

    usage, awaited = _result_usage(node)
    return CallSite(
        path=result.path,
        language=result.language,
        start_line=result.line_of(node.start_byte),
        end_line=result.line_of(max(node.start_byte, node.end_byte - 1)),
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        callee_text=result.text(callee),
        short_name=short_name,
        receiver=receiver,
        arguments=_arguments(result, args_node),
        scope_path=scope_path(result, node),
        result_usage=usage,
        enclosing_class=enclosing_class(result, node),
        awaited=awaited,
        is_constructor=is_constructor,
    )


def scan_file(result: ParseResult, added_lines: Iterable[int]) -> list[CallSite]:
    """Call sites of one parsed file that touch the given added lines."""
    added = sorted(set(added_lines))
    if not added:
        return []

    calls: list[CallSite] = []
    for node in result.iter_nodes(NodeKind.CALL):
        if result.line_of(node.start_byte) > added[-1]:
            continue
        args_node = node.child_by_field_name("arguments")
        if not _touches(_own_lines(result, node, args_node), added):
            continue
        call = build_call_site(result, node)
        if call is not None:
            calls.append(call)
    calls.sort(key=lambda c: (c.start_byte, c.end_byte))
    return calls


def scan_diff(
    diff: UnifiedDiff,
    files: Mapping[str, ParseResult],
    token: CancellationToken | None = None,
) -> list[CallSite]:
    """
    Call sites whose lines intersect an added line of the diff.

    Files the diff touches but that are missing from ``files`` (deleted,
    unparseable, unsupported) contribute nothing. The token is checked
    between files.
    """
    calls: list[CallSite] = []
    for file_diff in sorted(diff.files, key=lambda f: f.path):
        if token is not None:
            token.raise_if_cancelled()
        if file_diff.is_deleted:
            continue
        result = files.get(file_diff.path)
        if result is None:
            continue
        found = scan_file(result, file_diff.added_lines)
        log.debug("diff_file_scanned", path=file_diff.path, call_sites=len(found))
        calls.extend(found)
    return calls
