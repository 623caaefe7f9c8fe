"""Cooperative cancellation for review runs."""

from __future__ import annotations

import threading

from simcheck.core.errors import ReviewError


class CancellationToken:
    """Set by a newer run for the same pull request; polled between units of work."""

    def __init__(self, pr_id: str, head_commit: str = "") -> None:
        self.pr_id = pr_id
        self.head_commit = head_commit
        self._event = threading.Event()
        self._reason = "superseded"

    def __repr__(self) -> str:
        return (
            f"CancellationToken(pr_id={self.pr_id!r}, head_commit={self.head_commit!r}, "
            f"cancelled={self.cancelled})"
        )

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ReviewError.cancelled(self.pr_id, self._reason)
