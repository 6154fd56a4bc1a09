"""Replay a checkpoint lifecycle event log into a CheckpointingStatus.

The log is JSON lines, one event per line, discriminated by ``event``:

    {"event": "triggered", "checkpoint_id": 1, "kind": "checkpoint", "trigger_timestamp": 1000}
    {"event": "task_ack", "checkpoint_id": 1, "vertex_id": "source", "latest_ack_timestamp": 1030}
    {"event": "completed", "checkpoint_id": 1, "duration": 50}
    {"event": "failed", "checkpoint_id": 2, "failure_message": "disk full"}
    {"event": "discarded", "checkpoint_id": 1}
    {"event": "restored", "checkpoint_id": 1, "restore_timestamp": 5000}

Event logs are external data: each line is validated by a Pydantic model
before it reaches the status aggregate. Blank lines are skipped.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from checkpulse.contracts.enums import CheckpointType, SavepointFormat, SavepointPurpose
from checkpulse.contracts.errors import CheckpointStatsError
from checkpulse.contracts.kinds import Savepoint, SnapshotKind
from checkpulse.contracts.stats import TaskAck
from checkpulse.core.logging import get_logger
from checkpulse.core.status import CheckpointingStatus

logger = get_logger(__name__)

_EVENT_CONFIG = {"frozen": True, "extra": "forbid"}


class TriggeredEvent(BaseModel):
    """A checkpoint or savepoint was triggered."""

    model_config = _EVENT_CONFIG

    event: Literal["triggered"]
    checkpoint_id: int = Field(ge=0)
    kind: Literal["checkpoint", "full_checkpoint", "savepoint"]
    purpose: SavepointPurpose | None = Field(default=None, description="Required when kind is 'savepoint'")
    savepoint_format: SavepointFormat = SavepointFormat.CANONICAL
    unaligned: bool = False
    trigger_timestamp: int = Field(ge=0)
    num_subtasks: int = Field(default=0, ge=0)

    def snapshot_kind(self) -> SnapshotKind:
        if self.kind == "savepoint":
            if self.purpose is None:
                raise ValueError(f"Savepoint {self.checkpoint_id} is missing a purpose")
            return Savepoint(self.purpose, self.savepoint_format)
        return CheckpointType(self.kind)

    def apply(self, status: CheckpointingStatus) -> None:
        status.on_triggered(
            self.checkpoint_id,
            self.snapshot_kind(),
            unaligned=self.unaligned,
            trigger_timestamp=self.trigger_timestamp,
            num_subtasks=self.num_subtasks,
        )


class TaskAckEvent(BaseModel):
    """A job vertex acknowledged a pending checkpoint."""

    model_config = _EVENT_CONFIG

    event: Literal["task_ack"]
    checkpoint_id: int = Field(ge=0)
    vertex_id: str = Field(min_length=1)
    latest_ack_timestamp: int = Field(ge=0)
    checkpointed_size: int = Field(default=0, ge=0)
    state_size: int = Field(default=0, ge=0)
    duration: int = Field(default=0, ge=0)
    alignment_buffered: int = Field(default=0, ge=0)
    alignment_duration: int = Field(default=0, ge=0)
    processed_data: int = Field(default=0, ge=0)
    persisted_data: int = Field(default=0, ge=0)
    num_subtasks: int = Field(default=0, ge=0)
    num_acknowledged_subtasks: int = Field(default=0, ge=0)

    def apply(self, status: CheckpointingStatus) -> None:
        ack = TaskAck(**self.model_dump(exclude={"event", "checkpoint_id", "vertex_id"}))
        status.on_task_ack(self.checkpoint_id, self.vertex_id, ack)


class CompletedEvent(BaseModel):
    """A pending checkpoint completed."""

    model_config = _EVENT_CONFIG

    event: Literal["completed"]
    checkpoint_id: int = Field(ge=0)
    duration: int | None = Field(default=None, ge=0)
    state_size: int | None = Field(default=None, ge=0)
    checkpointed_size: int | None = Field(default=None, ge=0)
    processed_data: int | None = Field(default=None, ge=0)
    persisted_data: int | None = Field(default=None, ge=0)
    alignment_buffered: int | None = Field(default=None, ge=0)
    external_path: str | None = None

    def apply(self, status: CheckpointingStatus) -> None:
        status.on_completed(self.checkpoint_id, **self.model_dump(exclude={"event", "checkpoint_id"}))


class FailedEvent(BaseModel):
    """A pending checkpoint failed."""

    model_config = _EVENT_CONFIG

    event: Literal["failed"]
    checkpoint_id: int = Field(ge=0)
    failure_timestamp: int | None = Field(default=None, ge=0)
    failure_message: str | None = None

    def apply(self, status: CheckpointingStatus) -> None:
        status.on_failed(self.checkpoint_id, self.failure_timestamp, self.failure_message)


class DiscardedEvent(BaseModel):
    """A completed checkpoint's state was discarded."""

    model_config = _EVENT_CONFIG

    event: Literal["discarded"]
    checkpoint_id: int = Field(ge=0)

    def apply(self, status: CheckpointingStatus) -> None:
        status.on_discarded(self.checkpoint_id)


class RestoredEvent(BaseModel):
    """The job restored from a checkpoint."""

    model_config = _EVENT_CONFIG

    event: Literal["restored"]
    checkpoint_id: int = Field(ge=0)
    restore_timestamp: int = Field(ge=0)
    external_path: str | None = None
    is_savepoint: bool | None = None

    def apply(self, status: CheckpointingStatus) -> None:
        status.on_restored(
            self.checkpoint_id,
            self.restore_timestamp,
            external_path=self.external_path,
            is_savepoint=self.is_savepoint,
        )


LifecycleEvent = Annotated[
    TriggeredEvent | TaskAckEvent | CompletedEvent | FailedEvent | DiscardedEvent | RestoredEvent,
    Field(discriminator="event"),
]

_EVENT_ADAPTER: TypeAdapter[LifecycleEvent] = TypeAdapter(LifecycleEvent)


def parse_event(line: str) -> LifecycleEvent:
    """Parse and validate one JSON event line.

    Raises:
        ValidationError: If the line is not valid JSON or not a known event
    """
    return _EVENT_ADAPTER.validate_json(line)


class ReplayError(Exception):
    """An event in the log was rejected and replay stopped."""

    def __init__(self, line_number: int, cause: Exception) -> None:
        self.line_number = line_number
        self.cause = cause
        super().__init__(f"Line {line_number}: {cause}")


@dataclass(frozen=True)
class RejectedEvent:
    """An event skipped during a keep-going replay."""

    line_number: int
    error_type: str
    reason: str


@dataclass
class ReplayResult:
    """Outcome of replaying an event log."""

    applied: int = 0
    rejected: list[RejectedEvent] = field(default_factory=list)


def replay_events(
    status: CheckpointingStatus,
    lines: Iterable[str],
    *,
    keep_going: bool = False,
) -> ReplayResult:
    """Apply every event in lines to status, in order.

    Args:
        status: Aggregate to update
        lines: JSON lines (trailing newlines allowed)
        keep_going: Skip rejected events instead of stopping

    Returns:
        Counts of applied events and details of skipped ones

    Raises:
        ReplayError: On the first rejected event when keep_going is False
    """
    result = ReplayResult()
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            parse_event(line).apply(status)
        except (ValidationError, CheckpointStatsError, ValueError) as e:
            if not keep_going:
                raise ReplayError(line_number, e) from e
            logger.warning(
                "Skipping rejected event",
                line_number=line_number,
                error_type=type(e).__name__,
            )
            result.rejected.append(RejectedEvent(line_number, type(e).__name__, str(e)))
            continue
        result.applied += 1

    logger.debug("Replay finished", applied=result.applied, rejected=len(result.rejected))
    return result
