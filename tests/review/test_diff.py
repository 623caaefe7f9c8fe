"""Tests for unified diff parsing."""

from __future__ import annotations

from textwrap import dedent

import pytest

from simcheck.core.errors import ErrorCode, ReviewError
from simcheck.review.diff import FileStatus, parse_unified_diff

GIT_DIFF = dedent(
    """\
    diff --git a/src/app/form.js b/src/app/form.js
    index 3b18e51..a9c2f10 100644
    --- a/src/app/form.js
    +++ b/src/app/form.js
    @@ -2,4 +2,5 @@ import { isValidUrl } from "../utils/url";
     
     export function submit(input) {
    -  if (!isValidUrl(input)) {
    +  if (!isValidUrl(input, true)) {
    +    warn(input);
         return false;
    @@ -20,2 +21,2 @@ export function reset() {
    -  clear();
    +  clear(true);
       done();
    diff --git a/src/new.py b/src/new.py
    new file mode 100644
    index 0000000..1111111
    --- /dev/null
    +++ b/src/new.py
    @@ -0,0 +1,2 @@
    +def f():
    +    return 1
    diff --git a/src/old.py b/src/old.py
    deleted file mode 100644
    index 2222222..0000000
    --- a/src/old.py
    +++ /dev/null
    @@ -1,1 +0,0 @@
    -x = 1
    diff --git a/src/before.py b/src/after.py
    similarity index 90%
    rename from src/before.py
    rename to src/after.py
    --- a/src/before.py
    +++ b/src/after.py
    @@ -1 +1 @@
    -y = 1
    +y = 2
    """
)


class TestParseUnifiedDiff:
    def test_files_and_statuses(self) -> None:
        diff = parse_unified_diff(GIT_DIFF)

        assert [(f.path, f.status) for f in diff.files] == [
            ("src/app/form.js", FileStatus.MODIFIED),
            ("src/new.py", FileStatus.ADDED),
            ("src/old.py", FileStatus.DELETED),
            ("src/after.py", FileStatus.RENAMED),
        ]
        assert diff.file("src/after.py").old_path == "src/before.py"  # type: ignore[union-attr]
        assert diff.deleted_paths == ["src/old.py"]

    def test_added_lines_use_new_side_numbers(self) -> None:
        diff = parse_unified_diff(GIT_DIFF)

        assert diff.added_lines("src/app/form.js") == frozenset({4, 5, 21})
        assert diff.added_lines("src/new.py") == frozenset({1, 2})
        assert diff.added_lines("src/old.py") == frozenset()
        assert diff.added_lines("src/after.py") == frozenset({1})
        assert diff.added_lines("not/in/diff.py") == frozenset()

    def test_hunk_headers(self) -> None:
        form = parse_unified_diff(GIT_DIFF).file("src/app/form.js")
        assert form is not None

        assert [(h.old_start, h.old_lines, h.new_start, h.new_lines) for h in form.hunks] == [
            (2, 4, 2, 5),
            (20, 2, 21, 2),
        ]

    def test_plain_unified_diff_without_git_header(self) -> None:
        text = dedent(
            """\
            --- a/lib/util.py\t2024-01-01 00:00:00
            +++ b/lib/util.py\t2024-01-02 00:00:00
            @@ -1,2 +1,2 @@
             import os
            -VALUE = 1
            +VALUE = compute(2)
            """
        )

        diff = parse_unified_diff(text)

        assert diff.paths == ["lib/util.py"]
        assert diff.added_lines("lib/util.py") == frozenset({2})

    def test_no_newline_marker_is_ignored(self) -> None:
        text = (
            "--- a/a.py\n+++ b/a.py\n@@ -1 +1 @@\n-x = 1\n\\ No newline at end of file\n"
            "+x = 2\n\\ No newline at end of file\n"
        )

        assert parse_unified_diff(text).added_lines("a.py") == frozenset({1})

    def test_empty_diff(self) -> None:
        assert parse_unified_diff("").files == ()

    def test_malformed_hunk_header_raises(self) -> None:
        text = "--- a/a.py\n+++ b/a.py\n@@ -x +1 @@\n+y\n"

        with pytest.raises(ReviewError) as exc_info:
            parse_unified_diff(text)

        assert exc_info.value.code == ErrorCode.REVIEW_DIFF_PARSE_ERROR
        assert exc_info.value.details["line"] == 3

    def test_hunk_without_file_header_raises(self) -> None:
        with pytest.raises(ReviewError) as exc_info:
            parse_unified_diff("@@ -1 +1 @@\n+y\n")

        assert exc_info.value.code == ErrorCode.REVIEW_DIFF_PARSE_ERROR
