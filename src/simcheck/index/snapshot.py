"""Versioned, copy-on-write repository index.

Each commit gets its own ``IndexSnapshot``. Writers stage file updates
into a pending builder for the commit; ``publish`` freezes the builder
into an immutable snapshot. Readers pin one snapshot for the whole
review run and never observe a concurrent writer.

Storage is arena-style: entries are keyed by path, and both name maps
point at ``{path: definitions}``. Replacing a file touches only the
name-map slots that file contributed, so no stale entries survive an
update. Inner mappings are never mutated once a snapshot references
them; the builder copies a slot before changing it.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from types import MappingProxyType

import structlog

from simcheck.core.errors import IndexingError
from simcheck.index._internal.indexing.module_mapping import path_to_module
from simcheck.index.models import ImportBinding, SourceFile, SymbolDefinition

log = structlog.get_logger(__name__)

_NameMap = dict[str, Mapping[str, tuple[SymbolDefinition, ...]]]


@dataclass(frozen=True, slots=True)
class FileEntry:
    """One file's contribution to a snapshot."""

    source_file: SourceFile
    definitions: tuple[SymbolDefinition, ...]
    imports: tuple[ImportBinding, ...] = ()

    @property
    def path(self) -> str:
        return self.source_file.path

    @property
    def module(self) -> str:
        return path_to_module(self.source_file.path) or ""


def _slot_add(
    mapping: _NameMap, name: str, path: str, definition: SymbolDefinition
) -> None:
    slot = dict(mapping.get(name, {}))
    slot[path] = (*slot.get(path, ()), definition)
    mapping[name] = slot


def _slot_discard(mapping: _NameMap, name: str, path: str) -> None:
    slot = mapping.get(name)
    if slot is None or path not in slot:
        return
    remaining = {p: defs for p, defs in slot.items() if p != path}
    if remaining:
        mapping[name] = remaining
    else:
        del mapping[name]


def _flatten(slot: Mapping[str, tuple[SymbolDefinition, ...]] | None) -> list[SymbolDefinition]:
    if not slot:
        return []
    return [d for path in sorted(slot) for d in slot[path]]


class IndexSnapshot:
    """Immutable view of the index at one commit.

    All lookups return lists ordered by (path, source position), so two
    runs over the same snapshot see identical candidate orders.
    """

    __slots__ = ("_by_module", "_by_qualified", "_by_short", "_files", "commit_sha", "version")

    def __init__(
        self,
        commit_sha: str,
        version: int,
        files: dict[str, FileEntry],
        by_short: _NameMap,
        by_qualified: _NameMap,
        by_module: dict[str, tuple[str, ...]],
    ) -> None:
        self.commit_sha = commit_sha
        self.version = version
        self._files = files
        self._by_short = by_short
        self._by_qualified = by_qualified
        self._by_module = by_module

    @classmethod
    def empty(cls, commit_sha: str = "") -> IndexSnapshot:
        return cls(commit_sha, 0, {}, {}, {}, {})

    def __repr__(self) -> str:
        return (
            f"IndexSnapshot(commit_sha={self.commit_sha!r}, version={self.version}, "
            f"files={len(self._files)})"
        )

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    @property
    def files(self) -> Mapping[str, FileEntry]:
        return MappingProxyType(self._files)

    @property
    def definition_count(self) -> int:
        return sum(len(entry.definitions) for entry in self._files.values())

    def lookup_by_short_name(self, name: str) -> list[SymbolDefinition]:
        return _flatten(self._by_short.get(name))

    def lookup_by_qualified_name(self, name: str) -> list[SymbolDefinition]:
        return _flatten(self._by_qualified.get(name))

    def definitions_in_file(self, path: str) -> tuple[SymbolDefinition, ...]:
        entry = self._files.get(path)
        return entry.definitions if entry is not None else ()

    def imports_for(self, path: str) -> tuple[ImportBinding, ...]:
        entry = self._files.get(path)
        return entry.imports if entry is not None else ()

    def paths_for_module(self, module: str) -> tuple[str, ...]:
        return self._by_module.get(module, ())

    def overlay(
        self,
        entries: Iterable[FileEntry],
        removed: Iterable[str] = (),
        commit_sha: str | None = None,
    ) -> IndexSnapshot:
        """Derive an unpublished snapshot with some files replaced.

        Used to put a pull request's head versions of the changed files
        on top of the base commit without touching the base snapshot.
        """
        builder = _SnapshotBuilder(self)
        for path in removed:
            builder.drop(path)
        for entry in entries:
            builder.put(entry)
        return builder.freeze(commit_sha or self.commit_sha, self.version)


class _SnapshotBuilder:
    """Mutable staging area that freezes into an ``IndexSnapshot``."""

    def __init__(self, base: IndexSnapshot | None = None) -> None:
        if base is None:
            base = IndexSnapshot.empty()
        # Shallow copies: inner slots stay shared until written
        self.files: dict[str, FileEntry] = dict(base._files)
        self.by_short: _NameMap = dict(base._by_short)
        self.by_qualified: _NameMap = dict(base._by_qualified)
        self.by_module: dict[str, tuple[str, ...]] = dict(base._by_module)

    def put(self, entry: FileEntry) -> None:
        path = entry.path
        self.drop(path)
        self.files[path] = entry
        for definition in entry.definitions:
            _slot_add(self.by_short, definition.short_name, path, definition)
            _slot_add(self.by_qualified, definition.qualified_name, path, definition)
        module = entry.module
        if module:
            self.by_module[module] = tuple(sorted({*self.by_module.get(module, ()), path}))

    def drop(self, path: str) -> bool:
        old = self.files.pop(path, None)
        if old is None:
            return False
        for definition in old.definitions:
            _slot_discard(self.by_short, definition.short_name, path)
            _slot_discard(self.by_qualified, definition.qualified_name, path)
        module = old.module
        paths = tuple(p for p in self.by_module.get(module, ()) if p != path)
        if paths:
            self.by_module[module] = paths
        else:
            self.by_module.pop(module, None)
        return True

    def freeze(self, commit_sha: str, version: int) -> IndexSnapshot:
        return IndexSnapshot(
            commit_sha=commit_sha,
            version=version,
            files=dict(self.files),
            by_short=dict(self.by_short),
            by_qualified=dict(self.by_qualified),
            by_module=dict(self.by_module),
        )


class RepositoryIndex:
    """
    Commit-versioned definition index with snapshot isolation.

    SERIALIZATION:
    - ``update`` validates and builds its ``FileEntry`` before taking
      any lock, so writers for different files only ever wait on each
      other for the splice of one prebuilt entry.
    - ``_registry_lock`` guards the snapshot/pending/pin tables and that
      splice. Updates to the same path apply whole, in lock order; the
      last one wins.

    Usage::

        index = RepositoryIndex()
        index.update(source_file, definitions, imports)
        snapshot = index.publish(source_file.commit_sha)

        with index.pinned(snapshot.commit_sha) as snap:
            snap.lookup_by_short_name("parse")
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._published: dict[str, IndexSnapshot] = {}
        self._pending: dict[str, _SnapshotBuilder] = {}
        self._pins: Counter[str] = Counter()
        self._latest: str | None = None
        self._version = 0

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def begin(self, commit_sha: str, base_sha: str | None = None) -> None:
        """Open a pending version for ``commit_sha`` based on ``base_sha``.

        Without a base the latest published snapshot is used. Calling
        ``update`` for an unknown commit begins it implicitly.
        """
        with self._registry_lock:
            self._begin_locked(commit_sha, base_sha)

    def _begin_locked(self, commit_sha: str, base_sha: str | None) -> _SnapshotBuilder:
        builder = self._pending.get(commit_sha)
        if builder is not None:
            return builder
        if base_sha is not None:
            base = self._published.get(base_sha)
            if base is None:
                raise IndexingError.snapshot_not_found(base_sha)
        else:
            base = self._published.get(self._latest) if self._latest is not None else None
        builder = _SnapshotBuilder(base)
        self._pending[commit_sha] = builder
        return builder

    def update(
        self,
        file: SourceFile,
        defs: Iterable[SymbolDefinition],
        imports: Iterable[ImportBinding] = (),
    ) -> None:
        """Replace everything known about ``file.path`` in its commit's pending version."""
        definitions = tuple(defs)
        for definition in definitions:
            if definition.path != file.path:
                raise ValueError(
                    f"Definition {definition.qualified_name} belongs to {definition.path}, "
                    f"not {file.path}"
                )
        entry = FileEntry(source_file=file, definitions=definitions, imports=tuple(imports))

        with self._registry_lock:
            builder = self._begin_locked(file.commit_sha, None)
            builder.put(entry)

        log.debug(
            "index_file_updated",
            path=file.path,
            commit=file.commit_sha,
            definitions=len(definitions),
        )

    def remove(self, path: str, commit_sha: str) -> bool:
        """Drop a deleted file from the pending version of ``commit_sha``."""
        with self._registry_lock:
            builder = self._begin_locked(commit_sha, None)
            return builder.drop(path)

    def publish(self, commit_sha: str) -> IndexSnapshot:
        """Freeze the pending version of ``commit_sha`` and make it the latest."""
        with self._registry_lock:
            builder = self._pending.pop(commit_sha, None)
            if builder is None:
                raise IndexingError.snapshot_not_found(commit_sha)
            self._version += 1
            snapshot = builder.freeze(commit_sha, self._version)
            self._published[commit_sha] = snapshot
            self._latest = commit_sha

        log.info(
            "index_published",
            commit=commit_sha,
            version=snapshot.version,
            files=len(snapshot),
            definitions=snapshot.definition_count,
        )
        return snapshot

    def discard(self, commit_sha: str) -> bool:
        """Throw away the pending version of ``commit_sha``, if any."""
        with self._registry_lock:
            dropped = self._pending.pop(commit_sha, None) is not None
        if dropped:
            log.info("index_discarded", commit=commit_sha)
        return dropped

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def latest_commit(self) -> str | None:
        return self._latest

    def commits(self) -> list[str]:
        with self._registry_lock:
            return sorted(self._published, key=lambda sha: self._published[sha].version)

    def snapshot(self, commit_sha: str | None = None) -> IndexSnapshot:
        """The published snapshot for ``commit_sha`` (latest when omitted)."""
        with self._registry_lock:
            sha = commit_sha if commit_sha is not None else self._latest
            snapshot = self._published.get(sha) if sha is not None else None
        if snapshot is None:
            raise IndexingError.snapshot_not_found(commit_sha or "latest")
        return snapshot

    def lookup_by_short_name(self, name: str) -> list[SymbolDefinition]:
        if self._latest is None:
            return []
        return self.snapshot().lookup_by_short_name(name)

    def lookup_by_qualified_name(self, name: str) -> list[SymbolDefinition]:
        if self._latest is None:
            return []
        return self.snapshot().lookup_by_qualified_name(name)

    @contextmanager
    def pinned(self, commit_sha: str | None = None) -> Iterator[IndexSnapshot]:
        """Hold one snapshot for the duration of a review run."""
        snapshot = self.snapshot(commit_sha)
        with self._registry_lock:
            self._pins[snapshot.commit_sha] += 1
        try:
            yield snapshot
        finally:
            with self._registry_lock:
                self._pins[snapshot.commit_sha] -= 1
                if self._pins[snapshot.commit_sha] <= 0:
                    del self._pins[snapshot.commit_sha]

    def pin_count(self, commit_sha: str) -> int:
        with self._registry_lock:
            return self._pins.get(commit_sha, 0)

    def prune(self) -> list[str]:
        """Forget published snapshots that are superseded and unpinned."""
        with self._registry_lock:
            dropped = [
                sha
                for sha in self._published
                if sha != self._latest and self._pins.get(sha, 0) == 0
            ]
            for sha in dropped:
                del self._published[sha]
        if dropped:
            log.debug("index_pruned", commits=dropped)
        return dropped
