"""Configuration models.

Every field here can be set from YAML or from the environment as
``SIMCHECK__<SECTION>__<FIELD>``, e.g.::

    SIMCHECK__SIMILARITY_SEARCH__MIN_CONFIDENCE=0.7
    SIMCHECK__LOGGING__LEVEL=DEBUG
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LANGUAGES: frozenset[str] = frozenset({"python", "javascript", "typescript", "tsx"})


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class LogOutputConfig(_Section):
    """One log sink: a console stream or an append-only file."""

    format: Literal["json", "console"] = "console"
    destination: str = Field(
        default="stderr",
        description="'stderr', 'stdout' or an absolute file path.",
    )
    level: LogLevel | None = Field(
        default=None,
        description="Sink-specific level; the root level when unset.",
    )

    @field_validator("destination")
    @classmethod
    def _absolute_file(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"log file must be an absolute path, got {v!r}")
        return str(path)


class LoggingConfig(_Section):
    level: LogLevel = Field(
        default="INFO",
        description="Root level. DEBUG adds one event per resolved call site.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class SimilaritySearchConfig(_Section):
    """Switches and thresholds of the review pipeline."""

    enabled: bool = Field(
        default=True,
        description="When false every review returns no records.",
    )
    min_confidence: float = Field(
        default=0.4,
        description="Resolution candidates below this are discarded.",
    )
    max_file_bytes: int = Field(
        default=1_000_000,
        description="Larger files are skipped instead of parsed.",
    )
    supported_languages: frozenset[str] = Field(
        default=DEFAULT_LANGUAGES,
        description="Languages that are indexed and reviewed.",
    )
    max_error_ratio: float = Field(
        default=0.1,
        description="Share of ERROR nodes above which a file counts as unparseable.",
    )

    @field_validator("min_confidence", "max_error_ratio")
    @classmethod
    def _unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"must lie in [0, 1], got {v}")
        return v

    @field_validator("max_file_bytes")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("supported_languages")
    @classmethod
    def _normalize_languages(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(name.strip().lower() for name in v if name.strip())


class IndexerConfig(_Section):
    max_workers: int | None = Field(
        default=None,
        description="Parse/extract worker threads; one per CPU when unset.",
    )

    @field_validator("max_workers")
    @classmethod
    def _at_least_one(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v


class SimCheckConfig(_Section):
    """Resolved configuration; build it with ``load_config``."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    similarity_search: SimilaritySearchConfig = Field(default_factory=SimilaritySearchConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
