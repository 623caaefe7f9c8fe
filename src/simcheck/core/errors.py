"""simcheck error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index
- 4xxx: Review
- 9xxx: Internal

Per-file parse failures are not exceptions: the parser returns
``ParseError`` / ``Skipped`` values so one bad file never aborts a run.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Index (3xxx)
    INDEX_SNAPSHOT_NOT_FOUND = 3001

    # Review (4xxx)
    REVIEW_CANCELLED = 4001
    REVIEW_DIFF_PARSE_ERROR = 4002
    REVIEW_MISSING_CONTENT = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True)
class SimCheckError(Exception):
    """Base error with structured context for callers and logs."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'REVIEW_CANCELLED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SimCheckError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class IndexingError(SimCheckError):
    """Repository index errors."""

    @classmethod
    def snapshot_not_found(cls, commit_sha: str) -> "IndexingError":
        return cls(
            code=ErrorCode.INDEX_SNAPSHOT_NOT_FOUND,
            message=f"No index snapshot for commit {commit_sha}",
            details={"commit_sha": commit_sha},
        )


class ReviewError(SimCheckError):
    """Errors raised by a review run."""

    @classmethod
    def cancelled(cls, pr_id: str, reason: str = "superseded") -> "ReviewError":
        return cls(
            code=ErrorCode.REVIEW_CANCELLED,
            message=f"Review of {pr_id} cancelled: {reason}",
            retryable=False,
            details={"pr_id": pr_id, "reason": reason},
        )

    @classmethod
    def diff_parse_error(cls, line_no: int, reason: str) -> "ReviewError":
        return cls(
            code=ErrorCode.REVIEW_DIFF_PARSE_ERROR,
            message=f"Malformed unified diff at line {line_no}: {reason}",
            details={"line": line_no, "reason": reason},
        )

    @classmethod
    def missing_content(cls, path: str) -> "ReviewError":
        return cls(
            code=ErrorCode.REVIEW_MISSING_CONTENT,
            message=f"No file content supplied for changed file: {path}",
            details={"path": path},
        )


class InternalError(SimCheckError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
