"""Layered configuration loading.

Layers, lowest precedence first:

    built-in defaults
    < ~/.config/simcheck/config.yaml
    < <repo>/.simcheck/config.yaml
    < SIMCHECK__SECTION__KEY environment variables
    < keyword overrides passed to ``load_config``

YAML layers are merged key by key, so a repo file only needs the keys it
changes. Unknown keys are rejected at every layer.
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from simcheck.config.models import (
    IndexerConfig,
    LoggingConfig,
    SimCheckConfig,
    SimilaritySearchConfig,
)
from simcheck.core.errors import ConfigError

CONFIG_DIR = ".simcheck"
CONFIG_FILE = "config.yaml"
ENV_PREFIX = "SIMCHECK__"
GLOBAL_CONFIG_PATH = Path("~/.config/simcheck", CONFIG_FILE).expanduser()

# Merged YAML for the load_config call in progress
_yaml_layer: ContextVar[dict[str, Any] | None] = ContextVar("simcheck_yaml_layer", default=None)


def repo_config_path(repo_root: Path) -> Path:
    return repo_root / CONFIG_DIR / CONFIG_FILE


def _load_yaml(path: Path) -> dict[str, Any]:
    """Read one YAML layer. A missing file is an empty layer."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigError.parse_error(str(path), e.strerror or str(e)) from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(
            str(path), f"expected a mapping at top level, got {type(data).__name__}"
        )
    return data


def _merge(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge mappings left to right; nested mappings merge, anything else is replaced."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = _merge(current, value)
            else:
                merged[key] = value
    return merged


class _YamlLayerSource(PydanticBaseSettingsSource):
    """Feeds the merged YAML of the current ``load_config`` call to the settings."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = (_yaml_layer.get() or {}).get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        # Whole layer, so unknown top-level keys still fail validation
        return dict(_yaml_layer.get() or {})


class SimCheckSettings(BaseSettings):
    """Environment-aware view of SimCheckConfig.

    Nested keys use a double underscore: ``SIMCHECK__INDEXER__MAX_WORKERS=4``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="forbid",
    )

    logging: LoggingConfig = LoggingConfig()
    similarity_search: SimilaritySearchConfig = SimilaritySearchConfig()
    indexer: IndexerConfig = IndexerConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # First source wins
        return (init_settings, env_settings, _YamlLayerSource(settings_cls))


def _config_error(error: ValidationError) -> ConfigError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "<root>"
    return ConfigError.invalid_value(field, first.get("input"), first["msg"])


def load_config(repo_root: Path | None = None, **overrides: Any) -> SimCheckConfig:
    """
    Resolve the configuration for a repository.

    Args:
        repo_root: Repository whose ``.simcheck/config.yaml`` applies.
            Defaults to the current directory.
        **overrides: Section values that beat every other layer, e.g.
            ``similarity_search={"min_confidence": 0.8}``.

    Raises:
        ConfigError: CONFIG_PARSE_ERROR for unreadable YAML,
            CONFIG_INVALID_VALUE when a value fails validation.
    """
    root = repo_root or Path.cwd()
    layer = _merge(_load_yaml(GLOBAL_CONFIG_PATH), _load_yaml(repo_config_path(root)))

    token = _yaml_layer.set(layer)
    try:
        settings = SimCheckSettings(**overrides)
    except ValidationError as e:
        raise _config_error(e) from e
    finally:
        _yaml_layer.reset(token)

    try:
        return SimCheckConfig.model_validate(settings.model_dump())
    except ValidationError as e:
        raise _config_error(e) from e
