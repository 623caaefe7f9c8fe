"""Config module exports."""

from simcheck.config.loader import load_config
from simcheck.config.models import (
    IndexerConfig,
    LoggingConfig,
    SimCheckConfig,
    SimilaritySearchConfig,
)

__all__ = [
    "load_config",
    "SimCheckConfig",
    "SimilaritySearchConfig",
    "IndexerConfig",
    "LoggingConfig",
]
