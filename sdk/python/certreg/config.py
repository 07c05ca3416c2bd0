"""
Registry configuration.

Loads from an optional YAML file, overridable by CERTREG_* environment
variables (nested keys use "__", e.g. CERTREG_LOGGING__LEVEL=DEBUG).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .identity import DEFAULT_MAX_FIELD_LENGTH


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"


class RegistrySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CERTREG_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # "overwrite" replaces the existing record and loses its status history
    on_duplicate: Literal["reject", "overwrite"] = "reject"
    max_field_length: int = Field(default=DEFAULT_MAX_FIELD_LENGTH, gt=0)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(config_path: str | Path | None = None) -> RegistrySettings:
    """
    Build settings from YAML (if given and present), then environment.

    Init kwargs outrank env in pydantic-settings, so the env-provided
    values are merged over the YAML document before construction.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    env_overrides = RegistrySettings().model_dump(exclude_unset=True)
    return RegistrySettings(**_deep_merge(raw, env_overrides))
