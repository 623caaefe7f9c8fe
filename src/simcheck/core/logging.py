"""Structured logging for indexing and review runs.

structlog events are rendered by stdlib handlers, so console and file
outputs share one processor chain and can carry their own level and
format. Events logged inside ``review_context`` carry the run id, PR id
and head commit of the review that produced them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from simcheck.config.models import LoggingConfig, LogOutputConfig

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)

_CONSOLE_DESTINATIONS = ("stderr", "stdout")


def get_run_id() -> str | None:
    return _run_id.get()


def set_run_id(run_id: str | None = None) -> str:
    """Set (or generate) the correlation id of the current review run."""
    rid = run_id or uuid4().hex[:12]
    _run_id.set(rid)
    return rid


def clear_run_id() -> None:
    _run_id.set(None)


@contextmanager
def review_context(pr_id: str, head_commit: str) -> Iterator[str]:
    """Scope one review run.

    A fresh run id plus ``pr_id`` and ``head`` are attached to every
    event logged inside the block. Nested contexts restore the outer
    run's values on exit.

    Yields:
        The run id.
    """
    rid = uuid4().hex[:12]
    token = _run_id.set(rid)
    try:
        with structlog.contextvars.bound_contextvars(pr_id=pr_id, head=head_commit):
            yield rid
    finally:
        _run_id.reset(token)


def _add_run_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if rid := get_run_id():
        event_dict["run_id"] = rid
    return event_dict


def _level(name: str | None, default: int = logging.INFO) -> int:
    if not name:
        return default
    return logging.getLevelNamesMapping().get(name.upper(), default)


class ConsoleSuppressingFilter(logging.Filter):
    """Drops console log records while a Rich spinner owns the terminal."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        # progress imports rich; keep it out of module import time
        from simcheck.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _build_handler(output: LogOutputConfig) -> logging.Handler:
    if output.destination in _CONSOLE_DESTINATIONS:
        stream = sys.stdout if output.destination == "stdout" else sys.stderr
        handler: logging.Handler = logging.StreamHandler(stream)
        handler.addFilter(ConsoleSuppressingFilter())
        return handler
    path = Path(output.destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _build_formatter(
    output: LogOutputConfig, shared: list[structlog.types.Processor]
) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=output.destination in _CONSOLE_DESTINATIONS and sys.stderr.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog through stdlib logging to the configured outputs.

    Pass ``config`` for several outputs with their own levels and formats;
    without it a single stderr output is built from ``json_format`` and
    ``level``. Calling again closes and replaces the previous handlers.
    """
    from simcheck.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level.upper(),  # type: ignore[arg-type]
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _level(config.level)

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _add_run_id,  # type: ignore[list-item]
    ]
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers that were already handed out
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(root_level)

    for output in config.outputs:
        handler = _build_handler(output)
        handler.setLevel(_level(output.level, root_level))
        handler.setFormatter(_build_formatter(output, shared))
        root.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
