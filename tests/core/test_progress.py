"""Tests for CLI progress helpers."""

import pytest

from simcheck.core.progress import (
    get_console,
    is_console_suppressed,
    pluralize,
    spinner,
    status,
    suppress_console_logs,
)


class TestPluralize:
    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "0 files"), (1, "1 file"), (2, "2 files")],
    )
    def test_regular_plural(self, count: int, expected: str) -> None:
        assert pluralize(count, "file") == expected

    def test_irregular_plural(self) -> None:
        assert pluralize(3, "entry", "entries") == "3 entries"


class TestSuppression:
    def test_flag_is_scoped_to_context(self) -> None:
        assert not is_console_suppressed()
        with suppress_console_logs():
            assert is_console_suppressed()
        assert not is_console_suppressed()

    def test_flag_resets_on_error(self) -> None:
        with pytest.raises(RuntimeError), suppress_console_logs():
            raise RuntimeError("boom")
        assert not is_console_suppressed()

    def test_nested_suppression_lasts_until_outermost_exit(self) -> None:
        with suppress_console_logs():
            with suppress_console_logs():
                pass
            assert is_console_suppressed()
        assert not is_console_suppressed()


class TestOutput:
    def test_status_writes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        status("Indexed 3 files", style="success")

        captured = capsys.readouterr()
        assert "Indexed 3 files" in captured.err
        assert captured.out == ""

    def test_spinner_without_tty_prints_plain_line(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with spinner("Indexing"):
            pass

        assert "Indexing..." in capsys.readouterr().err

    def test_console_is_shared(self) -> None:
        assert get_console() is get_console()
