"""Review module - diff-scoped call-contract checking.

Public API:
- SimilarityReviewer: the full pipeline for one pull request update
- parse_unified_diff, scan_diff, resolve, verify, verify_candidates,
  synthesize: the individual stages
"""

from simcheck.review.cancellation import CancellationToken
from simcheck.review.diff import FileDiff, FileStatus, Hunk, UnifiedDiff, parse_unified_diff
from simcheck.review.models import (
    CallArgument,
    CallSite,
    Candidate,
    DroppedMismatch,
    Mismatch,
    MismatchKind,
    PullRequestEvent,
    ResolutionStage,
    ResultUsage,
    ReviewRecord,
    ReviewResult,
    RunMetadata,
    Severity,
    Suggestion,
)
from simcheck.review.pipeline import SimilarityReviewer
from simcheck.review.resolver import resolve
from simcheck.review.scanner import scan_diff
from simcheck.review.synthesizer import synthesize
from simcheck.review.verifier import verify, verify_candidates

__all__ = [
    # Pipeline
    "SimilarityReviewer",
    "CancellationToken",
    # Stages
    "parse_unified_diff",
    "scan_diff",
    "resolve",
    "verify",
    "verify_candidates",
    "synthesize",
    # Diff
    "UnifiedDiff",
    "FileDiff",
    "FileStatus",
    "Hunk",
    # Records
    "CallArgument",
    "CallSite",
    "Candidate",
    "DroppedMismatch",
    "Mismatch",
    "MismatchKind",
    "PullRequestEvent",
    "ResolutionStage",
    "ResultUsage",
    "ReviewRecord",
    "ReviewResult",
    "RunMetadata",
    "Severity",
    "Suggestion",
]
