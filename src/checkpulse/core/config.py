"""Configuration schema and loading for checkpulse.

Settings are Pydantic models, frozen after construction. load_settings()
reads a YAML file through Dynaconf, applies CHECKPULSE_* environment
overrides, and expands ${VAR} / ${VAR:-default} references before
validation.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class StatisticsSettings(BaseModel):
    """Retention and summary window for checkpoint statistics.

    history_size bounds the number of terminal checkpoints kept in history.
    The latest completed, savepoint and failed checkpoints are retained on
    top of that bound even after they leave the history.
    """

    model_config = {"frozen": True}

    history_size: int = Field(default=10, gt=0, description="Terminal checkpoints kept in history")
    histogram_window_size: int = Field(
        default=10_000,
        gt=0,
        description="Most recent samples used for percentile computation",
    )


class LoggingSettings(BaseModel):
    """Log output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON log lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class CheckpulseSettings(BaseModel):
    """Top-level checkpulse configuration.

    Every section has defaults, so an empty settings file is valid.
    """

    model_config = {"frozen": True}

    statistics: StatisticsSettings = Field(default_factory=StatisticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (validation reports it)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Dynaconf upper-cases keys; Pydantic fields are lower-case."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> CheckpulseSettings:
    """Load settings from YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (CHECKPULSE_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: CHECKPULSE_STATISTICS__HISTORY_SIZE for
    nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated CheckpulseSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="CHECKPULSE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lower_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    return CheckpulseSettings(**raw_config)
