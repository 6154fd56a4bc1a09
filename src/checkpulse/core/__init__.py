# src/checkpulse/core/__init__.py
"""Core infrastructure: Status aggregate, Summaries, Canonical, Configuration, Logging, Replay."""

from checkpulse.core.canonical import canonical_json, stable_hash
from checkpulse.core.config import (
    CheckpulseSettings,
    LoggingSettings,
    StatisticsSettings,
    load_settings,
)
from checkpulse.core.logging import configure_logging, get_logger
from checkpulse.core.serialization import from_json, to_document, to_json
from checkpulse.core.status import CheckpointingStatus
from checkpulse.core.summary import PERCENTILES, StatsSummary, fold_all

__all__ = [
    "PERCENTILES",
    "CheckpointingStatus",
    "CheckpulseSettings",
    "LoggingSettings",
    "StatisticsSettings",
    "StatsSummary",
    "canonical_json",
    "configure_logging",
    "fold_all",
    "from_json",
    "get_logger",
    "load_settings",
    "stable_hash",
    "to_document",
    "to_json",
]
