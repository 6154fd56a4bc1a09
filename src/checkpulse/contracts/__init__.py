"""Shared contracts for cross-boundary data types.

All dataclasses, enums and errors that cross subsystem boundaries are
defined here. This package is a LEAF MODULE with no outbound dependencies
to core.

Import patterns:
    # Contracts (lightweight, no heavy dependencies)
    from checkpulse.contracts import ReportedKind, Savepoint, classify

    # Settings classes (from core, pulls in pydantic/dynaconf)
    from checkpulse.core.config import CheckpulseSettings
"""

from checkpulse.contracts.enums import (
    CheckpointStatus,
    CheckpointType,
    ReportedKind,
    SavepointFormat,
    SavepointPurpose,
)
from checkpulse.contracts.errors import (
    CheckpointStatsError,
    DuplicateCheckpointError,
    InvalidClassificationError,
    InvalidStateTransitionError,
    UnknownCheckpointError,
)
from checkpulse.contracts.kinds import (
    CheckpointFlavor,
    OrdinaryCheckpoint,
    Savepoint,
    SnapshotKind,
    classify,
    classify_flavor,
    flavor_of,
)
from checkpulse.contracts.stats import (
    SUMMARY_METRICS,
    CheckpointingStatisticsSnapshot,
    CheckpointStats,
    CompletedCheckpointStats,
    Counts,
    FailedCheckpointStats,
    LatestCheckpoints,
    PendingCheckpointStats,
    RestoredCheckpointStats,
    SummarySet,
    SummaryStatistic,
    TaskAck,
    TaskCheckpointStats,
    checkpoint_stats_from_dict,
)

__all__ = [
    "SUMMARY_METRICS",
    "CheckpointFlavor",
    "CheckpointStats",
    "CheckpointStatsError",
    "CheckpointStatus",
    "CheckpointType",
    "CheckpointingStatisticsSnapshot",
    "CompletedCheckpointStats",
    "Counts",
    "DuplicateCheckpointError",
    "FailedCheckpointStats",
    "InvalidClassificationError",
    "InvalidStateTransitionError",
    "LatestCheckpoints",
    "OrdinaryCheckpoint",
    "PendingCheckpointStats",
    "ReportedKind",
    "RestoredCheckpointStats",
    "Savepoint",
    "SavepointFormat",
    "SavepointPurpose",
    "SnapshotKind",
    "SummarySet",
    "SummaryStatistic",
    "TaskAck",
    "TaskCheckpointStats",
    "UnknownCheckpointError",
    "checkpoint_stats_from_dict",
    "classify",
    "classify_flavor",
    "flavor_of",
]
