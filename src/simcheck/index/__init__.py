"""Index module - per-commit definition index.

This module provides:
- Syntax layer: tree-sitter parsing and definition extraction
- RepositoryIndex: commit-versioned, copy-on-write snapshots
- IndexCoordinator: parallel parse/extract feeding the index

Internal implementations are in `simcheck.index._internal/`.
"""

from simcheck.index.models import (
    DefinitionKind,
    ImportBinding,
    Parameter,
    ParamKind,
    ReturnUsage,
    SourceFile,
    SymbolDefinition,
    Visibility,
)
from simcheck.index.ops import FileAnalysis, IndexCoordinator, IndexRunStats
from simcheck.index.snapshot import FileEntry, IndexSnapshot, RepositoryIndex

__all__ = [
    # Public API
    "IndexCoordinator",
    "IndexRunStats",
    "FileAnalysis",
    "RepositoryIndex",
    "IndexSnapshot",
    "FileEntry",
    # Enums
    "DefinitionKind",
    "ParamKind",
    "ReturnUsage",
    "Visibility",
    # Records
    "ImportBinding",
    "Parameter",
    "SourceFile",
    "SymbolDefinition",
]
