"""Core module exports."""

from simcheck.core.errors import (
    ConfigError,
    ErrorCode,
    IndexingError,
    InternalError,
    ReviewError,
    SimCheckError,
)
from simcheck.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    review_context,
    set_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "IndexingError",
    "InternalError",
    "ReviewError",
    "SimCheckError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "review_context",
    "set_run_id",
]
