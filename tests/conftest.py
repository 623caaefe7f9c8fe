"""Root conftest: keep global logging state from leaking between tests."""

import logging

import pytest
import structlog

from simcheck.core.logging import clear_run_id


@pytest.fixture(autouse=True)
def _reset_logging():
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    clear_run_id()
    yield
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    structlog.contextvars.clear_contextvars()
    clear_run_id()
