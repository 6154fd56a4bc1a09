"""Status codes and kinds used across subsystem boundaries.

Values are lowercase strings; the reported kind keeps the upper-case names
monitoring clients already know.
"""

from enum import StrEnum


class CheckpointStatus(StrEnum):
    """Lifecycle state of one checkpoint attempt.

    Transitions are one-way: IN_PROGRESS -> COMPLETED or IN_PROGRESS -> FAILED.
    """

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not CheckpointStatus.IN_PROGRESS


class CheckpointType(StrEnum):
    """Ordinary periodic checkpoint kinds produced by the coordinator.

    Full and incremental checkpoints are not distinguished externally.
    """

    CHECKPOINT = "checkpoint"
    FULL_CHECKPOINT = "full_checkpoint"


class SavepointPurpose(StrEnum):
    """Why a savepoint was taken.

    Values:
        MANUAL: Requested explicitly by a user
        SUSPEND: Taken while stopping the job for a later resume
        TERMINATE: Taken while draining and terminating the job
    """

    MANUAL = "manual"
    SUSPEND = "suspend"
    TERMINATE = "terminate"


class SavepointFormat(StrEnum):
    """On-disk layout of a savepoint."""

    CANONICAL = "canonical"
    NATIVE = "native"


class ReportedKind(StrEnum):
    """Externally reported checkpoint kind. Closed set."""

    CHECKPOINT = "CHECKPOINT"
    UNALIGNED_CHECKPOINT = "UNALIGNED_CHECKPOINT"
    SAVEPOINT = "SAVEPOINT"
    SYNC_SAVEPOINT = "SYNC_SAVEPOINT"
