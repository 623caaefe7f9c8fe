"""Python definition extractor.

Handles:
- Module functions, nested functions, methods (``self``/``cls`` dropped)
- Constructors: ``__init__`` is emitted under the class name
- Parameter kinds from ``/``, ``*``, ``*args``, ``**kwargs`` markers
- Return usage from return statements, ``yield`` and ``-> None``
- ``import`` / ``from ... import`` bindings (relative imports resolved)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from simcheck.index._internal.extraction import (
    DeclarationInfo,
    DefinitionExtractor,
    descendants_outside_nested_scopes,
)
from simcheck.index._internal.indexing.module_mapping import resolve_python_module
from simcheck.index._internal.parsing.packs import NodeKind
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

# Decorators that turn a def into something that is not called like a function
_NON_CALLABLE_DECORATORS = frozenset({"property", "cached_property", "setter", "getter", "deleter"})
_STUB_STATEMENTS = frozenset({"pass_statement", "raise_statement"})
_VOID_ANNOTATIONS = frozenset({"None", "NoReturn", "Never"})


def _decorator_names(node: Any) -> list[str]:
    parent = node.parent
    if parent is None or parent.type != "decorated_definition":
        return []
    names: list[str] = []
    for child in parent.children:
        if child.type == "decorator":
            text = child.text.decode("utf-8").lstrip("@").strip()
            names.append(text.split("(", 1)[0].rsplit(".", 1)[-1])
    return names


def _is_in_class_body(node: Any) -> bool:
    anchor = node.parent
    if anchor is not None and anchor.type == "decorated_definition":
        anchor = anchor.parent
    return (
        anchor is not None
        and anchor.type == "block"
        and anchor.parent is not None
        and anchor.parent.type == "class_definition"
    )


def _visibility(name: str) -> Visibility:
    if name.startswith("__") and not name.endswith("__"):
        return Visibility.PRIVATE
    if name.startswith("_") and not name.startswith("__"):
        return Visibility.PROTECTED
    return Visibility.PUBLIC


def _field_text(node: Any, field_name: str) -> str | None:
    child = node.child_by_field_name(field_name)
    if child is None or child.text is None:
        return None
    return str(child.text.decode("utf-8"))


def _is_docstring(statement: Any) -> bool:
    return (
        statement.type == "expression_statement"
        and statement.named_child_count == 1
        and statement.named_children[0].type in ("string", "concatenated_string")
    )


def _splat_name(node: Any) -> str:
    for child in node.named_children:
        if child.type == "identifier":
            return str(child.text.decode("utf-8"))
    return node.text.decode("utf-8").lstrip("*")


class PythonDefinitionExtractor(DefinitionExtractor):
    """Python function/method/constructor extractor."""

    def container_name(self, result: ParseResult, node: Any) -> str | None:
        if node.type in ("function_definition", "class_definition"):
            return _field_text(node, "name")
        return None

    def declarations(
        self, result: ParseResult, node: Any, containers: tuple[str, ...]
    ) -> list[DeclarationInfo]:
        if node.type != "function_definition":
            return []
        name = _field_text(node, "name")
        if not name:
            return []

        decorators = _decorator_names(node)
        if any(d in _NON_CALLABLE_DECORATORS for d in decorators):
            return []

        in_class = _is_in_class_body(node)
        parameters = self._parameters(node)
        receiver: str | None = None
        if in_class and "staticmethod" not in decorators and parameters:
            if parameters[0].accepts_positional:
                if "classmethod" not in decorators:
                    receiver = parameters[0].name
                parameters = parameters[1:]

        is_async = any(child.type == "async" for child in node.children)
        return_usage, expression_bodied = self._return_contract(result, node)

        if in_class and name == "__init__" and containers:
            return [
                DeclarationInfo(
                    name=containers[-1],
                    kind=DefinitionKind.CONSTRUCTOR,
                    parameters=tuple(parameters),
                    return_usage=ReturnUsage.VALUE,
                    visibility=Visibility.PUBLIC,
                )
            ]

        return [
            DeclarationInfo(
                name=name,
                kind=DefinitionKind.METHOD if in_class else DefinitionKind.FUNCTION,
                parameters=tuple(parameters),
                return_usage=return_usage,
                visibility=_visibility(name),
                is_async=is_async,
                expression_bodied=expression_bodied,
                self_parameter=receiver,
            )
        ]

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def _parameters(self, node: Any) -> list[Parameter]:
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []

        params: list[Parameter] = []
        keyword_only = False

        for child in params_node.named_children:
            kind = ParamKind.KEYWORD_ONLY if keyword_only else ParamKind.POSITIONAL_OR_KEYWORD
            t = child.type

            if t == "positional_separator":
                params = [
                    Parameter(p.name, p.required, p.has_default, ParamKind.POSITIONAL_ONLY, p.declared_type)
                    if p.kind == ParamKind.POSITIONAL_OR_KEYWORD
                    else p
                    for p in params
                ]
            elif t == "keyword_separator":
                keyword_only = True
            elif t == "identifier":
                params.append(Parameter(child.text.decode("utf-8"), True, False, kind))
            elif t in ("default_parameter", "typed_default_parameter"):
                params.append(
                    Parameter(
                        name=_field_text(child, "name") or "",
                        required=False,
                        has_default=True,
                        kind=kind,
                        declared_type=_field_text(child, "type"),
                    )
                )
            elif t == "typed_parameter":
                inner = child.named_children[0] if child.named_child_count else None
                declared_type = _field_text(child, "type")
                if inner is not None and inner.type == "list_splat_pattern":
                    params.append(
                        Parameter(_splat_name(inner), False, False, ParamKind.VAR_POSITIONAL, declared_type)
                    )
                    keyword_only = True
                elif inner is not None and inner.type == "dictionary_splat_pattern":
                    params.append(
                        Parameter(_splat_name(inner), False, False, ParamKind.VAR_KEYWORD, declared_type)
                    )
                elif inner is not None:
                    params.append(Parameter(inner.text.decode("utf-8"), True, False, kind, declared_type))
            elif t == "list_splat_pattern":
                params.append(Parameter(_splat_name(child), False, False, ParamKind.VAR_POSITIONAL))
                keyword_only = True
            elif t == "dictionary_splat_pattern":
                params.append(Parameter(_splat_name(child), False, False, ParamKind.VAR_KEYWORD))

        return params

    # ------------------------------------------------------------------
    # Return contract
    # ------------------------------------------------------------------

    def _return_contract(self, result: ParseResult, node: Any) -> tuple[ReturnUsage, bool]:
        body = node.child_by_field_name("body")
        if body is None:
            return ReturnUsage.VALUE, False

        statements = [s for s in body.named_children if s.type != "comment"]
        if statements and _is_docstring(statements[0]):
            statements = statements[1:]
        expression_bodied = (
            len(statements) == 1
            and statements[0].type == "return_statement"
            and statements[0].named_child_count > 0
        )

        annotation = _field_text(node, "return_type")
        if annotation is not None:
            annotation = annotation.strip()
            if annotation in _VOID_ANNOTATIONS:
                return ReturnUsage.VOID, expression_bodied
            if annotation.lower().startswith("tuple["):
                return ReturnUsage.MULTIPLE, expression_bodied
            return ReturnUsage.VALUE, expression_bodied

        # Stubs (abstract methods, overloads, protocols) promise nothing either way
        if all(
            s.type in _STUB_STATEMENTS
            or (s.type == "expression_statement" and s.text.decode("utf-8").strip() == "...")
            for s in statements
        ):
            return ReturnUsage.VALUE, False

        returns_value = False
        returns_tuple = False
        for child in descendants_outside_nested_scopes(result, body):
            if child.type == "yield":
                return ReturnUsage.VALUE, expression_bodied
            if result.kind_of(child) == NodeKind.RETURN:
                values = [c for c in child.named_children if c.type != "comment"]
                if values:
                    returns_value = True
                    if values[0].type == "expression_list":
                        returns_tuple = True

        if returns_tuple:
            return ReturnUsage.MULTIPLE, expression_bodied
        if returns_value:
            return ReturnUsage.VALUE, expression_bodied
        return ReturnUsage.VOID, expression_bodied

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def imports(self, result: ParseResult) -> list[ImportBinding]:
        bindings: list[ImportBinding] = []
        for node in result.iter_nodes(NodeKind.IMPORT):
            if node.type == "import_statement":
                bindings.extend(self._plain_import(node))
            elif node.type == "import_from_statement":
                bindings.extend(self._from_import(result.path, node))
        return bindings

    @staticmethod
    def _plain_import(node: Any) -> list[ImportBinding]:
        bindings: list[ImportBinding] = []
        for child in node.children_by_field_name("name"):
            if child.type == "dotted_name":
                dotted = child.text.decode("utf-8")
                head = dotted.split(".", 1)[0]
                bindings.append(ImportBinding(head, head, dotted, is_module=True))
            elif child.type == "aliased_import":
                dotted = _field_text(child, "name") or ""
                alias = _field_text(child, "alias") or dotted
                bindings.append(ImportBinding(alias, dotted, dotted, is_module=True))
        return bindings

    @staticmethod
    def _from_import(path: str, node: Any) -> list[ImportBinding]:
        module_node = node.child_by_field_name("module_name")
        if module_node is None:
            return []
        module = resolve_python_module(path, module_node.text.decode("utf-8"))

        bindings: list[ImportBinding] = []
        for child in node.named_children:
            if child.type == "wildcard_import":
                bindings.append(ImportBinding("*", module, module, is_module=True))
        for child in node.children_by_field_name("name"):
            if child.type == "dotted_name":
                name = child.text.decode("utf-8")
                bindings.append(ImportBinding(name, _join(module, name), module))
            elif child.type == "aliased_import":
                name = _field_text(child, "name") or ""
                alias = _field_text(child, "alias") or name
                bindings.append(ImportBinding(alias, _join(module, name), module))
        return bindings


def _join(module: str, name: str) -> str:
    return f"{module}.{name}" if module else name
