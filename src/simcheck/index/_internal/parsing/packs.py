"""Per-language grammar packs.

A pack ties a language name to its tree-sitter grammar, the file
extensions that select it, and the syntax node types the extractors and
the call scanner care about, tagged with a language-neutral ``NodeKind``.
Python is one extractor family; JavaScript, TypeScript and TSX share the
other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class NodeKind(StrEnum):
    CALL = "call"
    FUNCTION = "function"
    CLASS = "class"
    PARAMETER = "parameter"
    RETURN = "return"
    IMPORT = "import"
    ARGUMENT_LIST = "argument_list"
    LAMBDA = "lambda"


@dataclass(frozen=True)
class LanguagePack:
    """Grammar and node-type table for one language."""

    name: str
    family: str
    distribution: str  # name on PyPI, for "grammar unavailable" reports
    module: str
    entry_point: str = "language"
    extensions: frozenset[str] = field(default_factory=frozenset)
    node_kinds: dict[str, NodeKind] = field(default_factory=dict)

    def kind_of(self, node_type: str) -> NodeKind | None:
        return self.node_kinds.get(node_type)


_PYTHON: dict[str, NodeKind] = {
    "call": NodeKind.CALL,
    "function_definition": NodeKind.FUNCTION,
    "class_definition": NodeKind.CLASS,
    **dict.fromkeys(
        (
            "typed_parameter",
            "default_parameter",
            "typed_default_parameter",
            "list_splat_pattern",
            "dictionary_splat_pattern",
        ),
        NodeKind.PARAMETER,
    ),
    "return_statement": NodeKind.RETURN,
    "import_statement": NodeKind.IMPORT,
    "import_from_statement": NodeKind.IMPORT,
    "argument_list": NodeKind.ARGUMENT_LIST,
    "lambda": NodeKind.LAMBDA,
}

_JS_FUNCTIONS = (
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
)
_JAVASCRIPT: dict[str, NodeKind] = {
    **dict.fromkeys(("call_expression", "new_expression"), NodeKind.CALL),
    **dict.fromkeys(_JS_FUNCTIONS, NodeKind.FUNCTION),
    **dict.fromkeys(("class_declaration", "class"), NodeKind.CLASS),
    **dict.fromkeys(("assignment_pattern", "rest_pattern"), NodeKind.PARAMETER),
    "return_statement": NodeKind.RETURN,
    "import_statement": NodeKind.IMPORT,
    "arguments": NodeKind.ARGUMENT_LIST,
}
# TypeScript adds declaration-only signatures and typed parameters
_TYPESCRIPT = {
    **_JAVASCRIPT,
    **dict.fromkeys(
        ("function_signature", "method_signature", "abstract_method_signature"),
        NodeKind.FUNCTION,
    ),
    **dict.fromkeys(("abstract_class_declaration", "interface_declaration"), NodeKind.CLASS),
    **dict.fromkeys(("required_parameter", "optional_parameter"), NodeKind.PARAMETER),
}

PACKS: dict[str, LanguagePack] = {
    pack.name: pack
    for pack in (
        LanguagePack(
            name="python",
            family="python",
            distribution="tree-sitter-python",
            module="tree_sitter_python",
            extensions=frozenset({"py", "pyi", "pyw"}),
            node_kinds=_PYTHON,
        ),
        LanguagePack(
            name="javascript",
            family="javascript",
            distribution="tree-sitter-javascript",
            module="tree_sitter_javascript",
            extensions=frozenset({"js", "jsx", "mjs", "cjs"}),
            node_kinds=_JAVASCRIPT,
        ),
        LanguagePack(
            name="typescript",
            family="javascript",
            distribution="tree-sitter-typescript",
            module="tree_sitter_typescript",
            entry_point="language_typescript",
            extensions=frozenset({"ts", "mts", "cts"}),
            node_kinds=_TYPESCRIPT,
        ),
        LanguagePack(
            name="tsx",
            family="javascript",
            distribution="tree-sitter-typescript",
            module="tree_sitter_typescript",
            entry_point="language_tsx",
            extensions=frozenset({"tsx"}),
            node_kinds=_TYPESCRIPT,
        ),
    )
}

_BY_EXTENSION: dict[str, LanguagePack] = {
    ext: pack for pack in PACKS.values() for ext in pack.extensions
}


def get_pack(language: str) -> LanguagePack | None:
    return PACKS.get(language)


def get_pack_for_ext(ext: str) -> LanguagePack | None:
    return _BY_EXTENSION.get(ext.lower().lstrip("."))


def detect_language(path: str) -> str | None:
    """Language name for a path, chosen by its extension; None if unsupported."""
    _, dot, ext = path.rpartition("/")[2].rpartition(".")
    if not dot:
        return None
    pack = get_pack_for_ext(ext)
    return pack.name if pack is not None else None
