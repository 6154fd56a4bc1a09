"""Immutable checkpoint statistics records.

Records are frozen dataclasses. The status aggregate replaces a record
with a new instance on every change, so any record handed out (directly or
inside a snapshot) is safe to share across threads.

Record variants are discriminated by ``status``:

- PendingCheckpointStats: IN_PROGRESS, no terminal fields
- CompletedCheckpointStats: COMPLETED, has external_path and discarded
- FailedCheckpointStats: FAILED, has failure_timestamp and failure_message

Units: sizes in bytes, durations in milliseconds, timestamps in epoch
milliseconds.
"""

import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from types import MappingProxyType
from typing import Any, Literal

from checkpulse.contracts.enums import CheckpointStatus, ReportedKind, SavepointFormat

def _require_non_negative(obj: object, names: tuple[str, ...]) -> None:
    for name in names:
        value = getattr(obj, name)
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"{type(obj).__name__}.{name} must be finite, got {value}")
        if value < 0:
            raise ValueError(f"{type(obj).__name__}.{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class SummaryStatistic:
    """Distributional summary of one metric across completed checkpoints.

    With no samples every field is 0.
    """

    min: int | float = 0
    max: int | float = 0
    average: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    p999: float = 0.0

    def __post_init__(self) -> None:
        _require_non_negative(self, tuple(f.name for f in fields(self)))

    @classmethod
    def empty(cls) -> "SummaryStatistic":
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SummaryStatistic":
        return cls(**{f.name: data[f.name] for f in fields(cls)})


@dataclass(frozen=True)
class SummarySet:
    """One SummaryStatistic per tracked metric."""

    checkpointed_size: SummaryStatistic = field(default_factory=SummaryStatistic)
    state_size: SummaryStatistic = field(default_factory=SummaryStatistic)
    duration: SummaryStatistic = field(default_factory=SummaryStatistic)
    alignment_buffered: SummaryStatistic = field(default_factory=SummaryStatistic)
    processed_data: SummaryStatistic = field(default_factory=SummaryStatistic)
    persisted_data: SummaryStatistic = field(default_factory=SummaryStatistic)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name).to_dict() for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SummarySet":
        return cls(**{f.name: SummaryStatistic.from_dict(data[f.name]) for f in fields(cls)})


# Metric names folded into SummarySet, in field order
SUMMARY_METRICS: tuple[str, ...] = tuple(f.name for f in fields(SummarySet))


@dataclass(frozen=True)
class TaskCheckpointStats:
    """Statistics of one job vertex within one checkpoint."""

    checkpoint_id: int
    status: CheckpointStatus
    latest_ack_timestamp: int
    checkpointed_size: int = 0
    state_size: int = 0
    duration: int = 0
    alignment_buffered: int = 0
    alignment_duration: int = 0
    processed_data: int = 0
    persisted_data: int = 0
    num_subtasks: int = 0
    num_acknowledged_subtasks: int = 0

    def __post_init__(self) -> None:
        _require_non_negative(
            self,
            (
                "checkpoint_id",
                "latest_ack_timestamp",
                "checkpointed_size",
                "state_size",
                "duration",
                "alignment_buffered",
                "alignment_duration",
                "processed_data",
                "persisted_data",
                "num_subtasks",
                "num_acknowledged_subtasks",
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskCheckpointStats":
        values = {f.name: data[f.name] for f in fields(cls)}
        values["status"] = CheckpointStatus(values["status"])
        return cls(**values)


@dataclass(frozen=True)
class TaskAck:
    """Vertex-level statistics reported when a job vertex acknowledges.

    The status aggregate stamps checkpoint_id and status onto it to build
    the TaskCheckpointStats it stores.
    """

    latest_ack_timestamp: int
    checkpointed_size: int = 0
    state_size: int = 0
    duration: int = 0
    alignment_buffered: int = 0
    alignment_duration: int = 0
    processed_data: int = 0
    persisted_data: int = 0
    num_subtasks: int = 0
    num_acknowledged_subtasks: int = 0


@dataclass(frozen=True, kw_only=True)
class _CheckpointStatsBase:
    """Fields shared by every checkpoint record variant."""

    checkpoint_id: int
    is_savepoint: bool
    savepoint_format: SavepointFormat | None
    trigger_timestamp: int
    latest_ack_timestamp: int
    checkpointed_size: int = 0
    state_size: int = 0
    duration: int = 0
    alignment_buffered: int = 0
    processed_data: int = 0
    persisted_data: int = 0
    num_subtasks: int = 0
    num_acknowledged_subtasks: int = 0
    reported_kind: ReportedKind
    task_stats: Mapping[str, TaskCheckpointStats] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_non_negative(
            self,
            (
                "checkpoint_id",
                "trigger_timestamp",
                "latest_ack_timestamp",
                "checkpointed_size",
                "state_size",
                "duration",
                "alignment_buffered",
                "processed_data",
                "persisted_data",
                "num_subtasks",
                "num_acknowledged_subtasks",
            ),
        )
        if self.is_savepoint and self.savepoint_format is None:
            raise ValueError(f"Savepoint {self.checkpoint_id} must have a savepoint_format")
        if not self.is_savepoint and self.savepoint_format is not None:
            raise ValueError(f"Checkpoint {self.checkpoint_id} is not a savepoint but has a savepoint_format")
        if not isinstance(self.task_stats, MappingProxyType):
            # Freeze the mapping so records can be shared with readers
            object.__setattr__(self, "task_stats", MappingProxyType(dict(self.task_stats)))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "task_stats":
                value = {vertex_id: stats.to_dict() for vertex_id, stats in value.items()}
            data[f.name] = value
        return data


@dataclass(frozen=True, kw_only=True)
class PendingCheckpointStats(_CheckpointStatsBase):
    """A checkpoint still waiting for acknowledgements."""

    status: Literal[CheckpointStatus.IN_PROGRESS] = CheckpointStatus.IN_PROGRESS


@dataclass(frozen=True, kw_only=True)
class CompletedCheckpointStats(_CheckpointStatsBase):
    """A checkpoint that completed successfully.

    Invariants:
    - Has duration (timing complete)
    - discarded flips to True once the checkpoint is subsumed and its
      state removed; status stays COMPLETED
    """

    status: Literal[CheckpointStatus.COMPLETED] = CheckpointStatus.COMPLETED
    external_path: str | None = None
    discarded: bool = False


@dataclass(frozen=True, kw_only=True)
class FailedCheckpointStats(_CheckpointStatsBase):
    """A checkpoint that failed. Its metrics never reach the summaries."""

    status: Literal[CheckpointStatus.FAILED] = CheckpointStatus.FAILED
    failure_timestamp: int | None = None
    failure_message: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.failure_timestamp is not None:
            _require_non_negative(self, ("failure_timestamp",))


# Discriminated union type
CheckpointStats = PendingCheckpointStats | CompletedCheckpointStats | FailedCheckpointStats

_RECORD_TYPES: dict[CheckpointStatus, type[_CheckpointStatsBase]] = {
    CheckpointStatus.IN_PROGRESS: PendingCheckpointStats,
    CheckpointStatus.COMPLETED: CompletedCheckpointStats,
    CheckpointStatus.FAILED: FailedCheckpointStats,
}


def checkpoint_stats_from_dict(data: Mapping[str, Any]) -> CheckpointStats:
    """Rebuild a record from its to_dict() form, dispatching on status."""
    status = CheckpointStatus(data["status"])
    record_type = _RECORD_TYPES[status]
    values = {f.name: data[f.name] for f in fields(record_type)}
    values["status"] = status
    values["reported_kind"] = ReportedKind(values["reported_kind"])
    if values["savepoint_format"] is not None:
        values["savepoint_format"] = SavepointFormat(values["savepoint_format"])
    values["task_stats"] = {
        vertex_id: TaskCheckpointStats.from_dict(stats) for vertex_id, stats in values["task_stats"].items()
    }
    record: CheckpointStats = record_type(**values)  # type: ignore[assignment]
    return record


@dataclass(frozen=True)
class RestoredCheckpointStats:
    """A restore event. Does not change the restored record's status."""

    checkpoint_id: int
    restore_timestamp: int
    is_savepoint: bool
    external_path: str | None = None

    def __post_init__(self) -> None:
        _require_non_negative(self, ("checkpoint_id", "restore_timestamp"))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RestoredCheckpointStats":
        return cls(**{f.name: data[f.name] for f in fields(cls)})


@dataclass(frozen=True)
class Counts:
    """Running checkpoint counts for a job.

    All counts only grow, except in_progress which rises on trigger and
    falls on completion or failure.
    """

    total: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    restored: int = 0

    def __post_init__(self) -> None:
        _require_non_negative(self, tuple(f.name for f in fields(self)))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Counts":
        return cls(**{f.name: data[f.name] for f in fields(cls)})


@dataclass(frozen=True)
class LatestCheckpoints:
    """Most recent record of each terminal kind, each None until one occurs."""

    completed: CompletedCheckpointStats | None = None
    savepoint: CompletedCheckpointStats | None = None
    failed: FailedCheckpointStats | None = None
    restored: RestoredCheckpointStats | None = None

    def to_dict(self) -> dict[str, Any]:
        return {f.name: None if getattr(self, f.name) is None else getattr(self, f.name).to_dict() for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LatestCheckpoints":
        def _record(key: str) -> Any:
            return None if data[key] is None else checkpoint_stats_from_dict(data[key])

        return cls(
            completed=_record("completed"),
            savepoint=_record("savepoint"),
            failed=_record("failed"),
            restored=None if data["restored"] is None else RestoredCheckpointStats.from_dict(data["restored"]),
        )


@dataclass(frozen=True)
class CheckpointingStatisticsSnapshot:
    """Read-consistent view of a job's checkpointing status.

    history holds terminal records oldest first and never exceeds the
    configured retention. in_progress holds pending records by ascending id.
    """

    counts: Counts
    summary: SummarySet
    latest: LatestCheckpoints
    history: tuple[CompletedCheckpointStats | FailedCheckpointStats, ...] = ()
    in_progress: tuple[PendingCheckpointStats, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "counts": self.counts.to_dict(),
            "summary": self.summary.to_dict(),
            "latest": self.latest.to_dict(),
            "history": [record.to_dict() for record in self.history],
            "in_progress": [record.to_dict() for record in self.in_progress],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CheckpointingStatisticsSnapshot":
        return cls(
            counts=Counts.from_dict(data["counts"]),
            summary=SummarySet.from_dict(data["summary"]),
            latest=LatestCheckpoints.from_dict(data["latest"]),
            history=tuple(checkpoint_stats_from_dict(r) for r in data["history"]),  # type: ignore[misc]
            in_progress=tuple(checkpoint_stats_from_dict(r) for r in data["in_progress"]),  # type: ignore[misc]
        )
