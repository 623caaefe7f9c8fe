"""Directories the source walk never descends into.

HARDCODED_DIRS are always skipped. DEFAULT_PRUNABLE_DIRS hold
dependencies, caches and build output of the Python and JavaScript
ecosystems, which would otherwise flood the index with definitions
nobody in the repository calls directly.
"""

from __future__ import annotations

HARDCODED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        # simcheck data
        ".simcheck",
    )
)

DEFAULT_PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # JavaScript/Node.js
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        ".next",
        ".nuxt",
        ".turbo",
        # Python
        "venv",
        ".venv",
        "virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".nox",
        ".eggs",
        "site-packages",
        # Build output
        "dist",
        "build",
        "coverage",
        "htmlcov",
    )
)

PRUNABLE_DIRS: frozenset[str] = HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS


def is_pruned(dirname: str) -> bool:
    """True if a directory with this name is never walked."""
    return dirname in PRUNABLE_DIRS or dirname.endswith(".egg-info")
