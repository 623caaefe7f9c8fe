"""CLI utilities."""

from __future__ import annotations

import os
from pathlib import Path

import click

from simcheck.config.models import SimilaritySearchConfig
from simcheck.core.excludes import is_pruned
from simcheck.index._internal.parsing import detect_language


def find_repo_root(start_path: Path | None = None) -> Path:
    """Find the repository root from the given path.

    Walks up the directory tree looking for a .git or .simcheck directory.
    Falls back to the starting directory when neither is found, so plain
    source trees can be reviewed too.
    """
    if start_path is None:
        start_path = Path.cwd()

    start = start_path.resolve()
    current = start
    while True:
        if (current / ".git").exists() or (current / ".simcheck").exists():
            return current
        if current == current.parent:
            return start
        current = current.parent


def collect_sources(root: Path, settings: SimilaritySearchConfig) -> dict[str, bytes]:
    """Read every supported source file under ``root``.

    Keys are repo-relative POSIX paths. Pruned directories are not
    descended into; files whose language is disabled are left out.
    """
    contents: dict[str, bytes] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not is_pruned(d))
        for filename in sorted(filenames):
            language = detect_language(filename)
            if language is None or language not in settings.supported_languages:
                continue
            full = Path(dirpath) / filename
            rel = full.relative_to(root).as_posix()
            try:
                contents[rel] = full.read_bytes()
            except OSError as e:
                raise click.ClickException(f"Cannot read {rel}: {e}") from e
    return contents


def read_changed(root: Path, paths: list[str]) -> dict[str, bytes]:
    """Head contents of the changed paths that exist under ``root``."""
    contents: dict[str, bytes] = {}
    for rel in paths:
        full = root / rel
        if full.is_file():
            contents[rel] = full.read_bytes()
    return contents
