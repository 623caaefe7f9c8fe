"""Unified diff parsing.

Accepts plain unified diffs (``---``/``+++`` headers) and git diffs
(``diff --git`` headers, mode lines, renames). Only what scoping needs is
kept: per file, the hunks and the new-side line numbers of added lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from simcheck.core.errors import ReviewError

_HUNK_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_lines>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_lines>\d+))? @@"
)
_GIT_HEADER_RE = re.compile(r"^diff --git (?P<old>\S+) (?P<new>\S+)")
_DEV_NULL = "/dev/null"


class FileStatus(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True, slots=True)
class Hunk:
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    added_lines: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class FileDiff:
    path: str  # new-side path (old path for deletions)
    old_path: str | None
    status: FileStatus
    hunks: tuple[Hunk, ...]

    @property
    def added_lines(self) -> frozenset[int]:
        return frozenset(line for hunk in self.hunks for line in hunk.added_lines)

    @property
    def is_deleted(self) -> bool:
        return self.status == FileStatus.DELETED


@dataclass(frozen=True, slots=True)
class UnifiedDiff:
    files: tuple[FileDiff, ...]

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    def file(self, path: str) -> FileDiff | None:
        for f in self.files:
            if f.path == path:
                return f
        return None

    def added_lines(self, path: str) -> frozenset[int]:
        f = self.file(path)
        return f.added_lines if f is not None else frozenset()

    @property
    def deleted_paths(self) -> list[str]:
        return [f.path for f in self.files if f.is_deleted]


def _strip_path(token: str) -> str | None:
    token = token.split("\t", 1)[0].strip()
    if token == _DEV_NULL:
        return None
    if token.startswith(("a/", "b/")):
        return token[2:]
    return token


class _FileBuilder:
    def __init__(self, old_path: str | None = None, new_path: str | None = None) -> None:
        self.old_path = old_path
        self.new_path = new_path
        self.status = FileStatus.MODIFIED
        self.hunks: list[Hunk] = []

    def build(self) -> FileDiff | None:
        path = self.new_path or self.old_path
        if path is None:
            return None
        if self.new_path is None:
            self.status = FileStatus.DELETED
        elif self.old_path is None and self.status == FileStatus.MODIFIED and self.hunks:
            self.status = FileStatus.ADDED
        elif self.old_path not in (None, self.new_path) and self.status == FileStatus.MODIFIED:
            self.status = FileStatus.RENAMED
        return FileDiff(
            path=path,
            old_path=self.old_path,
            status=self.status,
            hunks=tuple(self.hunks),
        )


def parse_unified_diff(text: str) -> UnifiedDiff:
    """
    Parse unified diff text.

    Raises:
        ReviewError: (REVIEW_DIFF_PARSE_ERROR) for a malformed hunk header
            or a hunk with no file header before it.
    """
    files: list[FileDiff] = []
    current: _FileBuilder | None = None
    old_remaining = new_remaining = 0
    new_line = 0
    added: list[int] = []
    hunk_header: tuple[int, int, int, int] | None = None

    def close_hunk() -> None:
        nonlocal hunk_header, added
        if current is not None and hunk_header is not None:
            current.hunks.append(Hunk(*hunk_header, added_lines=tuple(added)))
        hunk_header = None
        added = []

    def close_file() -> None:
        nonlocal current
        close_hunk()
        if current is not None:
            built = current.build()
            if built is not None:
                files.append(built)
        current = None

    for line_no, line in enumerate(text.splitlines(), start=1):
        if hunk_header is not None and (old_remaining > 0 or new_remaining > 0):
            marker = line[:1]
            if marker == "+":
                added.append(new_line)
                new_line += 1
                new_remaining -= 1
                continue
            if marker == "-":
                old_remaining -= 1
                continue
            if marker in (" ", ""):
                new_line += 1
                old_remaining -= 1
                new_remaining -= 1
                continue
            if marker == "\\":
                continue
            # Truncated hunk; fall through to header handling
            close_hunk()

        if line.startswith("\\"):
            continue

        git_header = _GIT_HEADER_RE.match(line)
        if git_header is not None:
            close_file()
            current = _FileBuilder(_strip_path(git_header["old"]), _strip_path(git_header["new"]))
            continue

        if line.startswith("--- "):
            close_hunk()
            if current is None or current.hunks:
                close_file()
                current = _FileBuilder()
            current.old_path = _strip_path(line[4:])
            continue

        if line.startswith("+++ "):
            if current is None:
                current = _FileBuilder()
            current.new_path = _strip_path(line[4:])
            continue

        if current is not None:
            if line.startswith("new file mode"):
                current.status = FileStatus.ADDED
                current.old_path = None
                continue
            if line.startswith("deleted file mode"):
                current.status = FileStatus.DELETED
                continue
            if line.startswith("rename from "):
                current.old_path = line[len("rename from ") :].strip()
                current.status = FileStatus.RENAMED
                continue
            if line.startswith("rename to "):
                current.new_path = line[len("rename to ") :].strip()
                current.status = FileStatus.RENAMED
                continue

        if line.startswith("@@"):
            match = _HUNK_RE.match(line)
            if match is None:
                raise ReviewError.diff_parse_error(line_no, f"malformed hunk header: {line!r}")
            if current is None:
                raise ReviewError.diff_parse_error(line_no, "hunk without a file header")
            close_hunk()
            old_lines = int(match["old_lines"]) if match["old_lines"] is not None else 1
            new_lines = int(match["new_lines"]) if match["new_lines"] is not None else 1
            new_start = int(match["new_start"])
            hunk_header = (int(match["old_start"]), old_lines, new_start, new_lines)
            old_remaining, new_remaining = old_lines, new_lines
            new_line = new_start
            continue

    close_file()
    return UnifiedDiff(files=tuple(files))
