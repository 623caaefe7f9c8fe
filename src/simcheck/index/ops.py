"""High-level orchestration of commit indexing.

This module implements the IndexCoordinator - the entry point for
indexing a commit. Parse and extract run per file on a worker pool with
no shared mutable state; each worker merges its result into the
RepositoryIndex through the per-file ``update``. The commit becomes
visible to readers only when the coordinator publishes it.

The coordinator never reads the disk: file contents are handed in by
the caller.
"""

from __future__ import annotations

import os
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import structlog

from simcheck.config.models import SimCheckConfig
from simcheck.index._internal.extraction import extract_file
from simcheck.index._internal.parsing import ParseError, ParseResult, Skipped, TreeSitterParser
from simcheck.index.snapshot import FileEntry, IndexSnapshot, RepositoryIndex

log = structlog.get_logger(__name__)

FileOutcome = tuple[ParseResult | None, FileEntry | ParseError | Skipped]


@dataclass
class IndexRunStats:
    """Statistics from indexing one commit."""

    commit_sha: str
    files_indexed: int
    definitions: int
    files_removed: int
    duration_seconds: float
    parse_errors: list[ParseError] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)


@dataclass
class FileAnalysis:
    """Parsed and extracted files of one batch, split by outcome."""

    results: dict[str, ParseResult] = field(default_factory=dict)
    entries: dict[str, FileEntry] = field(default_factory=dict)
    parse_errors: list[ParseError] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)


def _to_bytes(content: bytes | str) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


class IndexCoordinator:
    """
    Parallel indexer feeding a RepositoryIndex.

    Usage::

        coordinator = IndexCoordinator(RepositoryIndex(), config)
        stats = coordinator.index_commit("abc123", {"src/app.py": b"..."})
        snapshot = coordinator.index.snapshot("abc123")
    """

    def __init__(
        self,
        index: RepositoryIndex | None = None,
        config: SimCheckConfig | None = None,
        *,
        parser: TreeSitterParser | None = None,
    ) -> None:
        self.config = config or SimCheckConfig()
        self.index = index if index is not None else RepositoryIndex()
        self.parser = parser or TreeSitterParser.from_config(self.config.similarity_search)
        self.max_workers = self.config.indexer.max_workers or os.cpu_count() or 1

    def process_file(self, path: str, content: bytes | str, commit_sha: str) -> FileOutcome:
        """Parse and extract one file. Never raises for a bad file."""
        outcome = self.parser.parse_source(path, _to_bytes(content), commit_sha)
        if not isinstance(outcome, ParseResult):
            return None, outcome
        try:
            extraction = extract_file(outcome)
        except Exception as e:
            log.warning("extraction_failed", path=path, error=str(e))
            return outcome, ParseError(path=path, reason=f"extraction failed: {e}")
        entry = FileEntry(
            source_file=outcome.source_file,
            definitions=extraction.definitions,
            imports=extraction.imports,
        )
        return outcome, entry

    def analyze(self, contents: Mapping[str, bytes | str], commit_sha: str) -> FileAnalysis:
        """Parse and extract a batch of files on the worker pool."""
        analysis = FileAnalysis()
        paths = sorted(contents)
        if not paths:
            return analysis

        workers = max(1, min(self.max_workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="simcheck-indexer") as pool:
            outcomes = list(
                pool.map(lambda p: self.process_file(p, contents[p], commit_sha), paths)
            )

        for path, (result, outcome) in zip(paths, outcomes, strict=True):
            if result is not None:
                analysis.results[path] = result
            if isinstance(outcome, FileEntry):
                analysis.entries[path] = outcome
            elif isinstance(outcome, Skipped):
                analysis.skipped.append(outcome)
            else:
                analysis.parse_errors.append(outcome)
        return analysis

    def index_commit(
        self,
        commit_sha: str,
        contents: Mapping[str, bytes | str],
        base_sha: str | None = None,
        removed: Iterable[str] = (),
    ) -> IndexRunStats:
        """
        Index the given files as of ``commit_sha`` and publish the commit.

        Files not in ``contents`` carry over unchanged from the base
        snapshot (``base_sha`` or the latest published one). A file that
        fails to parse is dropped from this commit's snapshot so stale
        definitions for it are not served.

        Args:
            commit_sha: Commit being indexed.
            contents: Complete content of every added or changed file.
            base_sha: Snapshot to build on. Defaults to the latest.
            removed: Paths deleted in this commit.

        Returns:
            IndexRunStats for the run.
        """
        start = time.monotonic()
        self.index.begin(commit_sha, base_sha)
        paths = sorted(contents)

        def work(path: str) -> FileEntry | ParseError | Skipped:
            _, outcome = self.process_file(path, contents[path], commit_sha)
            if isinstance(outcome, FileEntry):
                self.index.update(outcome.source_file, outcome.definitions, outcome.imports)
            else:
                self.index.remove(path, commit_sha)
            return outcome

        outcomes: list[FileEntry | ParseError | Skipped] = []
        try:
            if paths:
                workers = max(1, min(self.max_workers, len(paths)))
                with ThreadPoolExecutor(
                    max_workers=workers, thread_name_prefix="simcheck-indexer"
                ) as pool:
                    outcomes = list(pool.map(work, paths))

            removed_count = sum(1 for path in removed if self.index.remove(path, commit_sha))
            snapshot = self.index.publish(commit_sha)
        except Exception:
            self.index.discard(commit_sha)
            raise

        stats = IndexRunStats(
            commit_sha=commit_sha,
            files_indexed=sum(1 for o in outcomes if isinstance(o, FileEntry)),
            definitions=sum(len(o.definitions) for o in outcomes if isinstance(o, FileEntry)),
            files_removed=removed_count,
            duration_seconds=time.monotonic() - start,
            parse_errors=[o for o in outcomes if isinstance(o, ParseError)],
            skipped=[o for o in outcomes if isinstance(o, Skipped)],
        )
        log.info(
            "commit_indexed",
            commit=commit_sha,
            version=snapshot.version,
            files=stats.files_indexed,
            definitions=stats.definitions,
            parse_errors=len(stats.parse_errors),
            skipped=len(stats.skipped),
            duration_ms=round(stats.duration_seconds * 1000, 1),
        )
        return stats

    def overlay(
        self,
        base: IndexSnapshot,
        contents: Mapping[str, bytes | str],
        commit_sha: str,
        removed: Iterable[str] = (),
    ) -> tuple[IndexSnapshot, FileAnalysis]:
        """Snapshot of ``base`` with ``contents`` applied, without publishing.

        Files that fail to parse or are skipped keep none of their base
        definitions: the head no longer matches them.
        """
        analysis = self.analyze(contents, commit_sha)
        unusable = [e.path for e in analysis.parse_errors]
        unusable.extend(s.path for s in analysis.skipped)
        snapshot = base.overlay(
            analysis.entries.values(),
            removed=[*removed, *unusable],
            commit_sha=commit_sha,
        )
        return snapshot, analysis
