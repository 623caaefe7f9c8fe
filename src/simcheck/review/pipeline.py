"""Review pipeline: diff scan -> resolve -> verify -> synthesize.

One ``SimilarityReviewer`` serves many pull requests. Each run pins the
base commit's snapshot, overlays the PR's head versions of the changed
files on it, and reads nothing else. A newer run for the same PR
cancels the older one; a cancelled or superseded run returns nothing.
"""

from __future__ import annotations

import threading
import time

import structlog

from simcheck.config.models import SimCheckConfig
from simcheck.core.errors import ErrorCode, ReviewError
from simcheck.core.logging import review_context
from simcheck.index._internal.parsing import detect_language
from simcheck.index.ops import IndexCoordinator
from simcheck.index.snapshot import IndexSnapshot, RepositoryIndex
from simcheck.review.cancellation import CancellationToken
from simcheck.review.diff import FileStatus, UnifiedDiff, parse_unified_diff
from simcheck.review.models import (
    DroppedMismatch,
    Mismatch,
    PullRequestEvent,
    ReviewRecord,
    ReviewResult,
    RunMetadata,
)
from simcheck.review.resolver import resolve
from simcheck.review.scanner import scan_diff
from simcheck.review.synthesizer import synthesize
from simcheck.review.verifier import verify_candidates

log = structlog.get_logger(__name__)


class SimilarityReviewer:
    """
    Reviews pull requests against a RepositoryIndex.

    Usage::

        reviewer = SimilarityReviewer(index, config)
        result = reviewer.review(event)
        for record in result.records:
            ...

    The base commit must already be indexed and published.
    """

    def __init__(
        self,
        index: RepositoryIndex,
        config: SimCheckConfig | None = None,
        *,
        coordinator: IndexCoordinator | None = None,
    ) -> None:
        self.index = index
        self.config = config or SimCheckConfig()
        self.coordinator = coordinator or IndexCoordinator(index, self.config)
        self._tokens: dict[str, CancellationToken] = {}
        self._tokens_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def _register(self, event: PullRequestEvent) -> CancellationToken:
        token = CancellationToken(event.pr_id, event.head_commit)
        with self._tokens_lock:
            previous = self._tokens.get(event.pr_id)
            self._tokens[event.pr_id] = token
        if previous is not None and not previous.cancelled:
            previous.cancel(f"superseded by {event.head_commit}")
            log.info(
                "review_superseded",
                old_head=previous.head_commit,
                new_head=event.head_commit,
            )
        return token

    def _release(self, token: CancellationToken) -> None:
        with self._tokens_lock:
            if self._tokens.get(token.pr_id) is token:
                del self._tokens[token.pr_id]

    def _is_current(self, token: CancellationToken) -> bool:
        with self._tokens_lock:
            return self._tokens.get(token.pr_id) is token and not token.cancelled

    def cancel(self, pr_id: str, reason: str = "cancelled") -> bool:
        """Cancel the in-flight run for ``pr_id``, if any."""
        with self._tokens_lock:
            token = self._tokens.get(pr_id)
        if token is None:
            return False
        token.cancel(reason)
        return True

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def review(self, event: PullRequestEvent) -> ReviewResult:
        """
        Review one pull request update.

        Returns:
            ReviewResult with records ordered by (file, line, position, kind).

        Raises:
            ReviewError: REVIEW_CANCELLED if a newer run for the same PR
                started first; REVIEW_DIFF_PARSE_ERROR for a malformed
                diff; REVIEW_MISSING_CONTENT if a changed source file has
                no content.
            IndexingError: if the base commit has not been indexed.
        """
        start = time.monotonic()
        metadata = RunMetadata(
            pr_id=event.pr_id,
            base_commit=event.base_commit,
            head_commit=event.head_commit,
        )
        settings = self.config.similarity_search
        if not settings.enabled:
            log.info("review_disabled", pr_id=event.pr_id)
            return ReviewResult(records=[], metadata=metadata)

        with review_context(event.pr_id, event.head_commit):
            token = self._register(event)
            log.info("review_started", base=event.base_commit)
            try:
                diff = parse_unified_diff(event.diff)
                with self.index.pinned(event.base_commit) as base:
                    records = self._run(event, diff, base, token, metadata)

                if not self._is_current(token):
                    raise ReviewError.cancelled(event.pr_id)
            except ReviewError as e:
                if e.code == ErrorCode.REVIEW_CANCELLED:
                    log.info("review_cancelled")
                raise
            finally:
                self._release(token)
                metadata.duration_seconds = time.monotonic() - start

            log.info(
                "review_completed",
                call_sites=metadata.call_sites,
                records=len(records),
                dropped=len(metadata.dropped),
                duration_ms=round(metadata.duration_seconds * 1000, 1),
            )
        return ReviewResult(records=records, metadata=metadata)

    def _head_contents(self, event: PullRequestEvent, diff: UnifiedDiff) -> dict[str, bytes | str]:
        contents: dict[str, bytes | str] = {}
        for file_diff in diff.files:
            if file_diff.is_deleted:
                continue
            content = event.file_contents.get(file_diff.path)
            if content is None:
                if detect_language(file_diff.path) is not None:
                    raise ReviewError.missing_content(file_diff.path)
                continue
            contents[file_diff.path] = content
        return contents

    def _run(
        self,
        event: PullRequestEvent,
        diff: UnifiedDiff,
        base: IndexSnapshot,
        token: CancellationToken,
        metadata: RunMetadata,
    ) -> list[ReviewRecord]:
        removed = [*diff.deleted_paths]
        removed.extend(
            f.old_path
            for f in diff.files
            if f.status == FileStatus.RENAMED and f.old_path and f.old_path != f.path
        )
        snapshot, analysis = self.coordinator.overlay(
            base, self._head_contents(event, diff), event.head_commit, removed=removed
        )
        metadata.parse_errors = analysis.parse_errors
        metadata.skipped = analysis.skipped
        token.raise_if_cancelled()

        calls = scan_diff(diff, analysis.results, token)
        metadata.call_sites = len(calls)
        min_confidence = self.config.similarity_search.min_confidence

        mismatches: list[Mismatch] = []
        for call in calls:
            token.raise_if_cancelled()
            candidates = resolve(call, snapshot, min_confidence)
            metadata.candidates += len(candidates)
            mismatch = verify_candidates(call, candidates)
            if mismatch is not None:
                mismatches.append(mismatch)
        metadata.mismatches = len(mismatches)

        mismatches.sort(
            key=lambda m: (m.call.path, m.call.start_line, m.call.start_byte, m.kind.value)
        )
        records: list[ReviewRecord] = []
        for mismatch in mismatches:
            record = self._synthesize(mismatch, metadata)
            if record is not None:
                records.append(record)
        return records

    def _synthesize(self, mismatch: Mismatch, metadata: RunMetadata) -> ReviewRecord | None:
        try:
            suggestion = synthesize(mismatch)
        except Exception as e:
            log.warning(
                "synthesis_failed",
                path=mismatch.call.path,
                line=mismatch.call.start_line,
                kind=mismatch.kind.value,
                error=str(e),
            )
            metadata.dropped.append(
                DroppedMismatch(
                    path=mismatch.call.path,
                    line=mismatch.call.start_line,
                    kind=mismatch.kind,
                    reason=str(e),
                )
            )
            return None
        return ReviewRecord(
            file=mismatch.call.path,
            line_range=mismatch.call.line_range,
            issue=suggestion.issue,
            fix=suggestion.fix,
            impact=suggestion.impact,
            confidence=mismatch.confidence,
            kind=mismatch.kind,
            severity=mismatch.severity,
            symbol=mismatch.definition.qualified_name,
        )
