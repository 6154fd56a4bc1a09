"""Typed errors raised by classification and the status update protocol.

Every error rejects a single event. Previously recorded state is never
modified by a rejected event.
"""

from checkpulse.contracts.enums import CheckpointStatus


class CheckpointStatsError(Exception):
    """Base class for all checkpoint statistics errors."""

    def __init__(self, message: str, *, checkpoint_id: int | None = None) -> None:
        self.checkpoint_id = checkpoint_id
        super().__init__(message)


class InvalidClassificationError(CheckpointStatsError, ValueError):
    """An impossible (snapshot kind, unaligned) pair reached the classifier.

    This signals a caller bug. It is never coerced into a valid kind.
    """


class DuplicateCheckpointError(CheckpointStatsError, ValueError):
    """A trigger event reused a checkpoint id.

    Checkpoint ids increase strictly, so any id at or below the last
    triggered one is treated as a duplicate.
    """

    def __init__(self, checkpoint_id: int, last_triggered_id: int | None = None) -> None:
        self.last_triggered_id = last_triggered_id
        message = f"Checkpoint {checkpoint_id} was already triggered"
        if last_triggered_id is not None and last_triggered_id != checkpoint_id:
            message += f" (last triggered checkpoint is {last_triggered_id})"
        super().__init__(message, checkpoint_id=checkpoint_id)


class UnknownCheckpointError(CheckpointStatsError, LookupError):
    """An event referenced a checkpoint id that was never triggered (or is no longer retained)."""

    def __init__(self, checkpoint_id: int) -> None:
        super().__init__(f"Unknown checkpoint {checkpoint_id}", checkpoint_id=checkpoint_id)


class InvalidStateTransitionError(CheckpointStatsError):
    """An event targeted a checkpoint whose status does not allow it.

    Attributes:
        current: Status the record is in
        requested: Operation that was attempted (e.g. "complete", "ack")
    """

    def __init__(self, checkpoint_id: int, current: CheckpointStatus, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot {requested} checkpoint {checkpoint_id}: status is {current}",
            checkpoint_id=checkpoint_id,
        )
