# src/checkpulse/core/status.py
"""Job-level checkpointing status and its update protocol.

CheckpointingStatus ingests lifecycle events from the checkpoint
coordinator and keeps a consistent reporting view:

- Counts (total, in progress, completed, failed, restored)
- One running summary per tracked metric, fed by completed checkpoints only
- The latest completed, savepoint, failed and restored entries
- A bounded FIFO history of terminal checkpoints

Thread Safety:
    A single lock guards every mutation and snapshot(). Each event either
    applies completely or is rejected with a CheckpointStatsError before
    any state changes. Logging happens outside the lock.

Retention:
    Latest-of-kind entries are stored as checkpoint ids that resolve
    through _records. A record evicted from history stays in _records for
    as long as a latest slot points at it.
"""

from __future__ import annotations

import dataclasses
import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from checkpulse.contracts.enums import CheckpointStatus
from checkpulse.contracts.errors import (
    CheckpointStatsError,
    DuplicateCheckpointError,
    InvalidClassificationError,
    InvalidStateTransitionError,
    UnknownCheckpointError,
)
from checkpulse.contracts.kinds import OrdinaryCheckpoint, Savepoint, SnapshotKind, classify, classify_flavor
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
    TaskAck,
    TaskCheckpointStats,
)
from checkpulse.core.logging import get_logger
from checkpulse.core.summary import StatsSummary

if TYPE_CHECKING:
    from checkpulse.core.config import StatisticsSettings

logger = get_logger(__name__)

# Parent record fields re-aggregated as sums over vertex statistics
_SUMMED_TASK_FIELDS: tuple[str, ...] = (
    "checkpointed_size",
    "state_size",
    "alignment_buffered",
    "processed_data",
    "persisted_data",
    "num_acknowledged_subtasks",
)

TerminalStats = CompletedCheckpointStats | FailedCheckpointStats


class CheckpointingStatus:
    """Checkpointing status of one job.

    Created when the job's checkpoint coordinator starts and discarded when
    the job terminates. Nothing is persisted.

    Usage:
        status = CheckpointingStatus(history_size=10)
        status.on_triggered(1, CheckpointType.CHECKPOINT, trigger_timestamp=1000)
        status.on_task_ack(1, "source", TaskAck(latest_ack_timestamp=1030, state_size=100))
        status.on_completed(1, state_size=120, duration=50)
        snapshot = status.snapshot()
    """

    def __init__(self, *, history_size: int = 10, histogram_window_size: int = 10_000) -> None:
        """Initialize an empty status.

        Args:
            history_size: Maximum number of terminal checkpoints in history
            histogram_window_size: Recent samples used for percentiles
        """
        if history_size <= 0:
            raise ValueError(f"history_size must be positive, got {history_size}")

        self._lock = threading.Lock()
        self._history_size = history_size
        self._counts = Counts()
        self._summaries = {metric: StatsSummary(histogram_window_size) for metric in SUMMARY_METRICS}
        self._summary_cache: SummarySet | None = SummarySet()

        self._pending: dict[int, PendingCheckpointStats] = {}
        self._records: dict[int, TerminalStats] = {}
        self._history: deque[int] = deque()
        self._last_triggered_id: int | None = None

        self._latest_completed_id: int | None = None
        self._latest_savepoint_id: int | None = None
        self._latest_failed_id: int | None = None
        self._latest_restored: RestoredCheckpointStats | None = None

    @classmethod
    def from_settings(cls, settings: StatisticsSettings) -> CheckpointingStatus:
        return cls(
            history_size=settings.history_size,
            histogram_window_size=settings.histogram_window_size,
        )

    @property
    def history_size(self) -> int:
        return self._history_size

    @property
    def counts(self) -> Counts:
        with self._lock:
            return self._counts

    def get(self, checkpoint_id: int) -> CheckpointStats | None:
        """Return the pending or retained record for an id, if any."""
        with self._lock:
            return self._lookup(checkpoint_id)

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    def on_triggered(
        self,
        checkpoint_id: int,
        kind: SnapshotKind | OrdinaryCheckpoint,
        *,
        unaligned: bool = False,
        trigger_timestamp: int,
        num_subtasks: int = 0,
    ) -> PendingCheckpointStats:
        """Record a newly triggered checkpoint.

        Args:
            checkpoint_id: Strictly increasing, non-negative id
            kind: CheckpointType, Savepoint, or an OrdinaryCheckpoint flavor
            unaligned: Unaligned flag for a bare CheckpointType or Savepoint
            trigger_timestamp: Epoch milliseconds
            num_subtasks: Subtasks expected to acknowledge

        Returns:
            The new pending record

        Raises:
            DuplicateCheckpointError: If the id was already triggered
            InvalidClassificationError: If kind and unaligned are incompatible
            ValueError: If checkpoint_id, trigger_timestamp or num_subtasks is negative
        """
        with self._rejections("trigger", checkpoint_id):
            if isinstance(kind, OrdinaryCheckpoint):
                if unaligned:
                    raise InvalidClassificationError(
                        "Pass unaligned on the OrdinaryCheckpoint, not alongside it",
                        checkpoint_id=checkpoint_id,
                    )
                reported_kind = classify_flavor(kind)
            else:
                reported_kind = classify(kind, unaligned)

            record = PendingCheckpointStats(
                checkpoint_id=checkpoint_id,
                is_savepoint=isinstance(kind, Savepoint),
                savepoint_format=kind.format if isinstance(kind, Savepoint) else None,
                trigger_timestamp=trigger_timestamp,
                latest_ack_timestamp=trigger_timestamp,
                num_subtasks=num_subtasks,
                reported_kind=reported_kind,
            )

            with self._lock:
                if self._last_triggered_id is not None and checkpoint_id <= self._last_triggered_id:
                    raise DuplicateCheckpointError(checkpoint_id, self._last_triggered_id)
                self._pending[checkpoint_id] = record
                self._last_triggered_id = checkpoint_id
                self._counts = dataclasses.replace(
                    self._counts,
                    total=self._counts.total + 1,
                    in_progress=self._counts.in_progress + 1,
                )

        logger.debug(
            "Checkpoint triggered",
            checkpoint_id=checkpoint_id,
            reported_kind=str(reported_kind),
            trigger_timestamp=trigger_timestamp,
        )
        return record

    def on_task_ack(self, checkpoint_id: int, vertex_id: str, ack: TaskAck) -> PendingCheckpointStats:
        """Upsert the statistics of one job vertex for a pending checkpoint.

        The parent's sizes and acknowledged subtask count become sums over
        its vertices; its latest_ack_timestamp never moves backwards.

        Raises:
            UnknownCheckpointError: If the id is not known
            InvalidStateTransitionError: If the checkpoint is no longer pending
        """
        with self._rejections("ack", checkpoint_id), self._lock:
            pending = self._require_pending(checkpoint_id, "ack")

            previous = pending.task_stats.get(vertex_id)
            ack_timestamp = ack.latest_ack_timestamp
            if previous is not None:
                ack_timestamp = max(ack_timestamp, previous.latest_ack_timestamp)
            task = TaskCheckpointStats(
                checkpoint_id=checkpoint_id,
                status=CheckpointStatus.IN_PROGRESS,
                **{**dataclasses.asdict(ack), "latest_ack_timestamp": ack_timestamp},
            )

            tasks = {**pending.task_stats, vertex_id: task}
            sums = {name: sum(getattr(t, name) for t in tasks.values()) for name in _SUMMED_TASK_FIELDS}
            latest_ack = max(pending.latest_ack_timestamp, ack_timestamp)
            record = dataclasses.replace(
                pending,
                latest_ack_timestamp=latest_ack,
                duration=max(latest_ack - pending.trigger_timestamp, 0),
                num_subtasks=max(pending.num_subtasks, sum(t.num_subtasks for t in tasks.values())),
                task_stats=tasks,
                **sums,
            )
            self._pending[checkpoint_id] = record

        logger.debug("Checkpoint task acknowledged", checkpoint_id=checkpoint_id, vertex_id=vertex_id)
        return record

    def on_completed(
        self,
        checkpoint_id: int,
        *,
        duration: int | None = None,
        state_size: int | None = None,
        checkpointed_size: int | None = None,
        processed_data: int | None = None,
        persisted_data: int | None = None,
        alignment_buffered: int | None = None,
        external_path: str | None = None,
    ) -> CompletedCheckpointStats:
        """Complete a pending checkpoint and fold its metrics into the summaries.

        Metrics left as None keep the values aggregated from task acks.

        Raises:
            UnknownCheckpointError: If the id is not known
            InvalidStateTransitionError: If the checkpoint is already terminal
            ValueError: If a metric is negative or non-finite
        """
        overrides: dict[str, Any] = {
            name: value
            for name, value in (
                ("duration", duration),
                ("state_size", state_size),
                ("checkpointed_size", checkpointed_size),
                ("processed_data", processed_data),
                ("persisted_data", persisted_data),
                ("alignment_buffered", alignment_buffered),
            )
            if value is not None
        }

        with self._rejections("complete", checkpoint_id), self._lock:
            pending = self._require_pending(checkpoint_id, "complete")
            record = CompletedCheckpointStats(
                **{**self._terminal_fields(pending, CheckpointStatus.COMPLETED), **overrides},
                external_path=external_path,
            )

            del self._pending[checkpoint_id]
            self._append_history(record)
            for metric in SUMMARY_METRICS:
                self._summaries[metric].add(getattr(record, metric))
            self._summary_cache = None
            self._counts = dataclasses.replace(
                self._counts,
                in_progress=self._counts.in_progress - 1,
                completed=self._counts.completed + 1,
            )
            previous_completed, self._latest_completed_id = self._latest_completed_id, checkpoint_id
            self._release(previous_completed)
            if record.is_savepoint:
                previous_savepoint, self._latest_savepoint_id = self._latest_savepoint_id, checkpoint_id
                self._release(previous_savepoint)

        logger.debug(
            "Checkpoint completed",
            checkpoint_id=checkpoint_id,
            duration=record.duration,
            state_size=record.state_size,
        )
        return record

    def on_failed(
        self,
        checkpoint_id: int,
        failure_timestamp: int | None = None,
        failure_message: str | None = None,
    ) -> FailedCheckpointStats:
        """Fail a pending checkpoint. Its metrics do not reach the summaries.

        Raises:
            UnknownCheckpointError: If the id is not known
            InvalidStateTransitionError: If the checkpoint is already terminal
            ValueError: If failure_timestamp precedes the trigger time
        """
        with self._rejections("fail", checkpoint_id), self._lock:
            pending = self._require_pending(checkpoint_id, "fail")
            fields = self._terminal_fields(pending, CheckpointStatus.FAILED)
            if failure_timestamp is not None:
                if failure_timestamp < pending.trigger_timestamp:
                    raise ValueError(
                        f"Checkpoint {checkpoint_id} failure_timestamp {failure_timestamp} "
                        f"precedes trigger_timestamp {pending.trigger_timestamp}"
                    )
                fields["duration"] = failure_timestamp - pending.trigger_timestamp
            record = FailedCheckpointStats(
                **fields,
                failure_timestamp=failure_timestamp,
                failure_message=failure_message,
            )

            del self._pending[checkpoint_id]
            self._append_history(record)
            self._counts = dataclasses.replace(
                self._counts,
                in_progress=self._counts.in_progress - 1,
                failed=self._counts.failed + 1,
            )
            previous_failed, self._latest_failed_id = self._latest_failed_id, checkpoint_id
            self._release(previous_failed)

        logger.debug("Checkpoint failed", checkpoint_id=checkpoint_id, failure_message=failure_message)
        return record

    def on_discarded(self, checkpoint_id: int) -> CompletedCheckpointStats:
        """Mark a completed checkpoint as discarded. Idempotent.

        Raises:
            UnknownCheckpointError: If the id is not retained
            InvalidStateTransitionError: If the checkpoint is not completed
        """
        with self._rejections("discard", checkpoint_id), self._lock:
            record = self._lookup(checkpoint_id)
            if record is None:
                raise UnknownCheckpointError(checkpoint_id)
            if not isinstance(record, CompletedCheckpointStats):
                raise InvalidStateTransitionError(checkpoint_id, record.status, "discard")
            if not record.discarded:
                record = dataclasses.replace(record, discarded=True)
                self._records[checkpoint_id] = record

        logger.debug("Checkpoint discarded", checkpoint_id=checkpoint_id)
        return record

    def on_restored(
        self,
        checkpoint_id: int,
        restore_timestamp: int,
        *,
        external_path: str | None = None,
        is_savepoint: bool | None = None,
    ) -> RestoredCheckpointStats:
        """Record that the job restored from a checkpoint.

        A retained checkpoint must be completed; its savepoint flag and
        external path are used unless given explicitly. A checkpoint that is
        not retained (e.g. from a previous run) is accepted only with an
        external_path pointing at it. The restored record is not modified.

        Raises:
            UnknownCheckpointError: If the id is not retained and no external_path is given
            InvalidStateTransitionError: If the retained checkpoint is not completed
        """
        with self._rejections("restore", checkpoint_id), self._lock:
            record = self._lookup(checkpoint_id)
            if record is None:
                if external_path is None:
                    raise UnknownCheckpointError(checkpoint_id)
                restored = RestoredCheckpointStats(
                    checkpoint_id=checkpoint_id,
                    restore_timestamp=restore_timestamp,
                    is_savepoint=bool(is_savepoint),
                    external_path=external_path,
                )
            elif isinstance(record, CompletedCheckpointStats):
                restored = RestoredCheckpointStats(
                    checkpoint_id=checkpoint_id,
                    restore_timestamp=restore_timestamp,
                    is_savepoint=record.is_savepoint if is_savepoint is None else is_savepoint,
                    external_path=external_path if external_path is not None else record.external_path,
                )
            else:
                raise InvalidStateTransitionError(checkpoint_id, record.status, "restore")

            self._latest_restored = restored
            self._counts = dataclasses.replace(self._counts, restored=self._counts.restored + 1)

        logger.info(
            "Checkpoint restored",
            checkpoint_id=checkpoint_id,
            restore_timestamp=restore_timestamp,
            external_path=restored.external_path,
        )
        return restored

    def snapshot(self) -> CheckpointingStatisticsSnapshot:
        """Return a read-consistent, immutable view of the current status."""
        with self._lock:
            if self._summary_cache is None:
                self._summary_cache = SummarySet(
                    **{metric: self._summaries[metric].snapshot() for metric in SUMMARY_METRICS}
                )
            return CheckpointingStatisticsSnapshot(
                counts=self._counts,
                summary=self._summary_cache,
                latest=LatestCheckpoints(
                    completed=self._resolve(self._latest_completed_id),  # type: ignore[arg-type]
                    savepoint=self._resolve(self._latest_savepoint_id),  # type: ignore[arg-type]
                    failed=self._resolve(self._latest_failed_id),  # type: ignore[arg-type]
                    restored=self._latest_restored,
                ),
                history=tuple(self._records[checkpoint_id] for checkpoint_id in self._history),
                in_progress=tuple(self._pending[checkpoint_id] for checkpoint_id in sorted(self._pending)),
            )

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    @contextmanager
    def _rejections(self, operation: str, checkpoint_id: int) -> Iterator[None]:
        """Log rejected events, then let the error propagate."""
        try:
            yield
        except (CheckpointStatsError, ValueError) as e:
            logger.warning(
                "Checkpoint event rejected",
                operation=operation,
                checkpoint_id=checkpoint_id,
                error_type=type(e).__name__,
                reason=str(e),
            )
            raise

    def _lookup(self, checkpoint_id: int) -> CheckpointStats | None:
        pending = self._pending.get(checkpoint_id)
        if pending is not None:
            return pending
        return self._records.get(checkpoint_id)

    def _resolve(self, checkpoint_id: int | None) -> TerminalStats | None:
        if checkpoint_id is None:
            return None
        return self._records[checkpoint_id]

    def _require_pending(self, checkpoint_id: int, operation: str) -> PendingCheckpointStats:
        pending = self._pending.get(checkpoint_id)
        if pending is not None:
            return pending
        record = self._records.get(checkpoint_id)
        if record is not None:
            raise InvalidStateTransitionError(checkpoint_id, record.status, operation)
        raise UnknownCheckpointError(checkpoint_id)

    @staticmethod
    def _terminal_fields(pending: PendingCheckpointStats, status: CheckpointStatus) -> dict[str, Any]:
        """Common fields of a pending record, with task statuses moved to status."""
        fields = {f.name: getattr(pending, f.name) for f in dataclasses.fields(pending) if f.name != "status"}
        fields["task_stats"] = {
            vertex_id: dataclasses.replace(task, status=status) for vertex_id, task in pending.task_stats.items()
        }
        return fields

    def _append_history(self, record: TerminalStats) -> None:
        self._records[record.checkpoint_id] = record
        self._history.append(record.checkpoint_id)
        while len(self._history) > self._history_size:
            self._release(self._history.popleft())

    def _release(self, checkpoint_id: int | None) -> None:
        """Drop a terminal record once neither history nor a latest slot needs it."""
        if checkpoint_id is None or checkpoint_id in self._history:
            return
        if checkpoint_id in (self._latest_completed_id, self._latest_savepoint_id, self._latest_failed_id):
            return
        self._records.pop(checkpoint_id, None)
