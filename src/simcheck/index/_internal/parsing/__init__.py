"""Tree-sitter parsing adapter."""

from simcheck.index._internal.parsing.packs import (
    PACKS,
    LanguagePack,
    NodeKind,
    detect_language,
    get_pack,
)
from simcheck.index._internal.parsing.treesitter import (
    ParseError,
    ParseResult,
    Skipped,
    TreeSitterParser,
    walk,
)

__all__ = [
    "PACKS",
    "LanguagePack",
    "NodeKind",
    "ParseError",
    "ParseResult",
    "Skipped",
    "TreeSitterParser",
    "detect_language",
    "get_pack",
    "walk",
]
