"""JavaScript / TypeScript definition extractor.

One extractor serves javascript, typescript and tsx; the TypeScript-only
node types (``required_parameter``, ``function_signature``, ...) simply
never occur in JavaScript trees.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from simcheck.index._internal.extraction import (
    DeclarationInfo,
    DefinitionExtractor,
    descendants_outside_nested_scopes,
)
from simcheck.index._internal.indexing.module_mapping import resolve_js_specifier
from simcheck.index._internal.parsing.packs import NodeKind
from simcheck.index._internal.parsing.treesitter import walk
from simcheck.index.models import (
    DefinitionKind,
    ImportBinding,
    Parameter,
    ParamKind,
    ReturnUsage,
    Visibility,
)

if TYPE_CHECKING:
    from simcheck.index._internal.parsing.treesitter import ParseResult

_NAMED_DECLARATIONS = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_signature",
        "method_definition",
        "method_signature",
        "abstract_method_signature",
    }
)
_ANONYMOUS_FUNCTIONS = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
_CLASS_BODIES = frozenset({"class_body", "interface_body", "object_type"})
_VOID_TYPES = frozenset({"void", "undefined", "never", "Promise<void>"})
_ACCESSORS = frozenset({"get", "set"})


def _text(node: Any | None) -> str | None:
    if node is None or node.text is None:
        return None
    return str(node.text.decode("utf-8"))


def _strip_quotes(text: str) -> str:
    return text.strip().strip("'\"`")


def _binding_name(node: Any) -> str | None:
    """Name a function expression takes from the syntax that binds it."""
    parent = node.parent
    while parent is not None and parent.type == "parenthesized_expression":
        parent = parent.parent
    if parent is None:
        return None
    if parent.type == "variable_declarator":
        name = parent.child_by_field_name("name")
        return _text(name) if name is not None and name.type == "identifier" else None
    if parent.type == "assignment_expression":
        left = parent.child_by_field_name("left")
        if left is None:
            return None
        if left.type == "member_expression":
            return _text(left.child_by_field_name("property"))
        if left.type == "identifier":
            return _text(left)
        return None
    if parent.type == "pair":
        key = _text(parent.child_by_field_name("key"))
        return _strip_quotes(key) if key else None
    if parent.type in ("field_definition", "public_field_definition"):
        name = parent.child_by_field_name("property") or parent.child_by_field_name("name")
        return _text(name)
    return None


def _is_class_member(node: Any) -> bool:
    anchor = node.parent
    if anchor is not None and anchor.type in ("field_definition", "public_field_definition"):
        anchor = anchor.parent
    return anchor is not None and anchor.type in _CLASS_BODIES


def _has_token(node: Any, token: str) -> bool:
    return any(child.type == token for child in node.children)


def _visibility(node: Any, name: str) -> Visibility:
    if name.startswith("#"):
        return Visibility.PRIVATE
    for anchor in (node, node.parent):
        if anchor is None:
            continue
        for child in anchor.children:
            if child.type == "accessibility_modifier":
                return Visibility(_text(child) or "public")
    return Visibility.PUBLIC


def _type_text(type_annotation: Any | None) -> str | None:
    text = _text(type_annotation)
    if text is None:
        return None
    return text.lstrip(":").strip() or None


class JavaScriptDefinitionExtractor(DefinitionExtractor):
    """JavaScript/TypeScript function/method/constructor extractor."""

    def container_name(self, result: ParseResult, node: Any) -> str | None:
        if node.type in _ANONYMOUS_FUNCTIONS:
            return _binding_name(node)
        name = node.child_by_field_name("name")
        if name is None:
            return None
        return _strip_quotes(_text(name) or "") or None

    def declarations(
        self, result: ParseResult, node: Any, containers: tuple[str, ...]
    ) -> list[DeclarationInfo]:
        if node.type in _NAMED_DECLARATIONS:
            name = _strip_quotes(_text(node.child_by_field_name("name")) or "")
        elif node.type in _ANONYMOUS_FUNCTIONS:
            name = _binding_name(node) or ""
        else:
            return []
        if not name:
            return []

        in_class = node.type in _NAMED_DECLARATIONS and _is_class_member(node)
        if node.type in _ANONYMOUS_FUNCTIONS:
            in_class = _is_class_member(node.parent) if node.parent is not None else False

        # Getters/setters are read like properties, never called
        if any(_has_token(node, accessor) for accessor in _ACCESSORS) and node.type in (
            "method_definition",
            "method_signature",
        ):
            return []

        parameters = tuple(self._parameters(node))
        is_async = _has_token(node, "async")

        if in_class and name == "constructor":
            if not containers:
                return []
            return [
                DeclarationInfo(
                    name=containers[-1],
                    kind=DefinitionKind.CONSTRUCTOR,
                    parameters=parameters,
                    return_usage=ReturnUsage.VALUE,
                    visibility=Visibility.PUBLIC,
                )
            ]

        return_usage, expression_bodied = self._return_contract(result, node)
        return [
            DeclarationInfo(
                name=name,
                kind=DefinitionKind.METHOD if in_class else DefinitionKind.FUNCTION,
                parameters=parameters,
                return_usage=return_usage,
                visibility=_visibility(node, name),
                is_async=is_async,
                expression_bodied=expression_bodied,
            )
        ]

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def _parameters(self, node: Any) -> list[Parameter]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            # x => x + 1
            return [Parameter(_text(single) or "", True, False)]
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []

        params: list[Parameter] = []
        for child in params_node.named_children:
            param = self._parameter(child)
            if param is not None:
                params.append(param)
        return params

    def _parameter(self, node: Any) -> Parameter | None:
        t = node.type
        if t in ("identifier", "object_pattern", "array_pattern"):
            return Parameter(_text(node) or "", True, False)
        if t == "assignment_pattern":
            return Parameter(_text(node.child_by_field_name("left")) or "", False, True)
        if t == "rest_pattern":
            return Parameter(_rest_name(node), False, False, ParamKind.VAR_POSITIONAL)
        if t in ("required_parameter", "optional_parameter"):
            pattern = node.child_by_field_name("pattern")
            if pattern is None or pattern.type == "this":
                return None
            declared_type = _type_text(node.child_by_field_name("type"))
            if pattern.type == "rest_pattern":
                return Parameter(_rest_name(pattern), False, False, ParamKind.VAR_POSITIONAL, declared_type)
            has_default = node.child_by_field_name("value") is not None
            return Parameter(
                name=_text(pattern) or "",
                required=t == "required_parameter" and not has_default,
                has_default=has_default,
                declared_type=declared_type,
            )
        return None

    # ------------------------------------------------------------------
    # Return contract
    # ------------------------------------------------------------------

    def _return_contract(self, result: ParseResult, node: Any) -> tuple[ReturnUsage, bool]:
        body = node.child_by_field_name("body")
        expression_bodied = body is not None and node.type == "arrow_function" and body.type != "statement_block"

        declared = _type_text(node.child_by_field_name("return_type"))
        if declared is not None:
            if declared in _VOID_TYPES:
                return ReturnUsage.VOID, expression_bodied
            return ReturnUsage.VALUE, expression_bodied

        if body is None:
            # Overload and interface signatures without a type promise nothing
            return ReturnUsage.VALUE, False
        if expression_bodied or _has_token(node, "*") or "generator" in node.type:
            return ReturnUsage.VALUE, expression_bodied

        statements = [s for s in body.named_children if s.type != "comment"]
        if (
            len(statements) == 1
            and statements[0].type == "return_statement"
            and statements[0].named_child_count > 0
        ):
            expression_bodied = True

        for child in descendants_outside_nested_scopes(result, body):
            if result.kind_of(child) == NodeKind.RETURN and any(
                c.type != "comment" for c in child.named_children
            ):
                return ReturnUsage.VALUE, expression_bodied
        return ReturnUsage.VOID, expression_bodied

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def imports(self, result: ParseResult) -> list[ImportBinding]:
        bindings: list[ImportBinding] = []
        for node in walk(result.root):
            if node.type == "import_statement":
                bindings.extend(self._es_import(result.path, node))
            elif node.type == "variable_declarator":
                bindings.extend(self._require(result.path, node))
        return bindings

    @staticmethod
    def _es_import(path: str, node: Any) -> list[ImportBinding]:
        source = _text(node.child_by_field_name("source"))
        if not source:
            return []
        module = resolve_js_specifier(path, _strip_quotes(source))

        bindings: list[ImportBinding] = []
        for clause in node.named_children:
            if clause.type != "import_clause":
                continue
            for child in clause.named_children:
                if child.type == "identifier":
                    # Default export: assume it is named like the local binding
                    local = _text(child) or ""
                    bindings.append(ImportBinding(local, f"{module}.{local}", module))
                elif child.type == "namespace_import":
                    for ident in child.named_children:
                        if ident.type == "identifier":
                            bindings.append(ImportBinding(_text(ident) or "", module, module, is_module=True))
                elif child.type == "named_imports":
                    for spec in child.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = _strip_quotes(_text(spec.child_by_field_name("name")) or "")
                        alias = _text(spec.child_by_field_name("alias")) or name
                        bindings.append(ImportBinding(alias, f"{module}.{name}", module))
        return bindings

    @staticmethod
    def _require(path: str, node: Any) -> list[ImportBinding]:
        value = node.child_by_field_name("value")
        if value is None or value.type != "call_expression":
            return []
        if _text(value.child_by_field_name("function")) != "require":
            return []
        args = value.child_by_field_name("arguments")
        if args is None or args.named_child_count != 1 or args.named_children[0].type != "string":
            return []
        module = resolve_js_specifier(path, _strip_quotes(_text(args.named_children[0]) or ""))

        name = node.child_by_field_name("name")
        if name is None:
            return []
        if name.type == "identifier":
            return [ImportBinding(_text(name) or "", module, module, is_module=True)]

        bindings: list[ImportBinding] = []
        if name.type == "object_pattern":
            for prop in name.named_children:
                if prop.type == "shorthand_property_identifier_pattern":
                    local = _text(prop) or ""
                    bindings.append(ImportBinding(local, f"{module}.{local}", module))
                elif prop.type == "pair_pattern":
                    key = _text(prop.child_by_field_name("key")) or ""
                    local = _text(prop.child_by_field_name("value")) or key
                    bindings.append(ImportBinding(local, f"{module}.{key}", module))
        return bindings


def _rest_name(node: Any) -> str:
    for child in node.named_children:
        return _text(child) or ""
    return (_text(node) or "").lstrip(".")
