"""Tree-sitter parsing adapter.

Wraps a tree-sitter grammar per language and produces a ``ParseResult``:
the syntax tree, a normalized node-kind view over it (``NodeKind``) and a
byte → line map of the content.

Parsing is pure. A failure for one file never raises out of ``parse``;
it comes back as a ``ParseError`` value so indexing of other files
continues. Files above ``max_file_bytes`` or in an unsupported language
come back as ``Skipped``.
"""

from __future__ import annotations

import bisect
import importlib
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
import tree_sitter

from simcheck.index._internal.parsing.packs import (
    LanguagePack,
    NodeKind,
    detect_language,
    get_pack,
)
from simcheck.index.models import SourceFile

if TYPE_CHECKING:
    from simcheck.config.models import SimilaritySearchConfig

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ParseError:
    """A file that could not be parsed. Coverage degrades for this file only."""

    path: str
    reason: str


@dataclass(frozen=True, slots=True)
class Skipped:
    """A file deliberately not parsed (size policy or unsupported language)."""

    path: str
    reason: str  # too_large | unsupported_language
    size: int = 0


@dataclass
class ParseResult:
    """Result of parsing a file."""

    source_file: SourceFile
    content: bytes
    tree: Any  # tree-sitter Tree (not serializable)
    pack: LanguagePack
    error_count: int
    total_nodes: int
    line_starts: tuple[int, ...] = field(repr=False, default=(0,))

    @property
    def path(self) -> str:
        return self.source_file.path

    @property
    def language(self) -> str:
        return self.pack.name

    @property
    def root(self) -> Any:
        return self.tree.root_node

    def kind_of(self, node: Any) -> NodeKind | None:
        # Keyword tokens ("class", "lambda", "function") share names with node types
        if not node.is_named:
            return None
        return self.pack.kind_of(node.type)

    def iter_nodes(self, *kinds: NodeKind) -> Iterator[Any]:
        """Yield nodes of the given kinds in source order (pre-order)."""
        wanted = frozenset(kinds)
        for node in walk(self.root):
            kind = self.kind_of(node)
            if kind is not None and (not wanted or kind in wanted):
                yield node

    def text(self, node: Any) -> str:
        return self.content[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def line_of(self, byte_offset: int) -> int:
        """1-based line number containing ``byte_offset``."""
        return bisect.bisect_right(self.line_starts, byte_offset)


def walk(root: Any) -> Iterator[Any]:
    """Iterative pre-order traversal (deep trees must not hit the recursion limit)."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def compute_line_starts(content: bytes) -> tuple[int, ...]:
    starts = [0]
    index = content.find(b"\n")
    while index != -1:
        starts.append(index + 1)
        index = content.find(b"\n", index + 1)
    return tuple(starts)


@dataclass
class TreeSitterParser:
    """
    Tree-sitter parser for the supported languages.

    Usage::

        parser = TreeSitterParser(max_file_bytes=1_000_000)
        outcome = parser.parse(source_file, content)
        if isinstance(outcome, ParseResult):
            ...

    Safe to share between worker threads: each thread gets its own
    ``tree_sitter.Parser``; loaded grammars are shared.
    """

    max_file_bytes: int = 1_000_000
    max_error_ratio: float = 0.1
    supported_languages: frozenset[str] | None = None

    _languages: dict[str, Any] = field(default_factory=dict, repr=False)
    _languages_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _local: threading.local = field(default_factory=threading.local, repr=False)

    @classmethod
    def from_config(cls, config: SimilaritySearchConfig) -> TreeSitterParser:
        return cls(
            max_file_bytes=config.max_file_bytes,
            max_error_ratio=config.max_error_ratio,
            supported_languages=config.supported_languages,
        )

    def is_supported(self, language: str | None) -> bool:
        if language is None or get_pack(language) is None:
            return False
        return self.supported_languages is None or language in self.supported_languages

    def _get_language(self, pack: LanguagePack) -> Any:
        """Get or load the tree-sitter Language for a pack."""
        with self._languages_lock:
            lang = self._languages.get(pack.name)
            if lang is None:
                module = importlib.import_module(pack.module)
                lang = tree_sitter.Language(getattr(module, pack.entry_point)())
                self._languages[pack.name] = lang
            return lang

    def _get_parser(self, pack: LanguagePack) -> Any:
        parsers: dict[str, Any] | None = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = {}
            self._local.parsers = parsers
        parser = parsers.get(pack.name)
        if parser is None:
            parser = tree_sitter.Parser(self._get_language(pack))
            parsers[pack.name] = parser
        return parser

    def parse(self, file: SourceFile, content: bytes) -> ParseResult | ParseError | Skipped:
        """
        Parse one file.

        Args:
            file: The file identity (path, language, hash, commit).
            content: Complete file content.

        Returns:
            ParseResult on success, ParseError when the grammar is missing
            or the tree is dominated by syntax errors, Skipped for files
            over the size threshold or in an unsupported language.
        """
        if not self.is_supported(file.language):
            return Skipped(path=file.path, reason="unsupported_language", size=len(content))
        if len(content) > self.max_file_bytes:
            log.info(
                "file_skipped",
                path=file.path,
                size=len(content),
                limit=self.max_file_bytes,
            )
            return Skipped(path=file.path, reason="too_large", size=len(content))

        pack = get_pack(file.language)
        assert pack is not None

        try:
            parser = self._get_parser(pack)
        except (ImportError, AttributeError, ValueError) as e:
            log.warning("grammar_unavailable", language=pack.name, error=str(e))
            return ParseError(path=file.path, reason=f"grammar unavailable: {pack.distribution}")

        tree = parser.parse(content)
        if tree is None or tree.root_node is None:
            return ParseError(path=file.path, reason="parser produced no tree")

        error_count = 0
        total_nodes = 0
        for node in walk(tree.root_node):
            total_nodes += 1
            if node.type == "ERROR" or node.is_missing:
                error_count += 1

        if error_count and error_count / total_nodes > self.max_error_ratio:
            log.info("parse_failed", path=file.path, errors=error_count, nodes=total_nodes)
            return ParseError(
                path=file.path,
                reason=f"syntax errors in {error_count} of {total_nodes} nodes",
            )

        return ParseResult(
            source_file=file,
            content=content,
            tree=tree,
            pack=pack,
            error_count=error_count,
            total_nodes=total_nodes,
            line_starts=compute_line_starts(content),
        )

    def parse_source(
        self, path: str, content: bytes | str, commit_sha: str = ""
    ) -> ParseResult | ParseError | Skipped:
        """Detect the language from ``path``, build the SourceFile, then parse."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        language = detect_language(path) or ""
        file = SourceFile.from_content(path, language, data, commit_sha)
        return self.parse(file, data)
