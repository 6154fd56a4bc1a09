"""Snapshot kinds and their classification into reported kinds.

The coordinator describes a snapshot with two independent values: a kind
(an ordinary checkpoint type or a savepoint) and an ``unaligned`` flag.
Savepoints are never unaligned, so that pairing has a correlated validity
constraint. Two representations are provided:

- ``classify(kind, unaligned)`` accepts the loose pair and rejects invalid
  combinations at runtime.
- ``CheckpointFlavor`` (``OrdinaryCheckpoint | Savepoint``) carries
  ``unaligned`` only on the ordinary-checkpoint arm, so the invalid state
  cannot be built. ``flavor_of()`` converts the loose pair into it.

Classification table:

    kind                         unaligned=False    unaligned=True
    CHECKPOINT / FULL_CHECKPOINT CHECKPOINT         UNALIGNED_CHECKPOINT
    Savepoint(MANUAL)            SAVEPOINT          (rejected)
    Savepoint(SUSPEND|TERMINATE) SYNC_SAVEPOINT     (rejected)
"""

from dataclasses import dataclass

from checkpulse.contracts.enums import (
    CheckpointType,
    ReportedKind,
    SavepointFormat,
    SavepointPurpose,
)
from checkpulse.contracts.errors import InvalidClassificationError


@dataclass(frozen=True)
class Savepoint:
    """A savepoint snapshot kind.

    Savepoints are always aligned.
    """

    purpose: SavepointPurpose = SavepointPurpose.MANUAL
    format: SavepointFormat = SavepointFormat.CANONICAL

    @property
    def is_synchronous(self) -> bool:
        """True when the savepoint is taken as part of stopping the job."""
        return self.purpose is not SavepointPurpose.MANUAL

    @classmethod
    def manual(cls, format: SavepointFormat = SavepointFormat.CANONICAL) -> "Savepoint":
        return cls(SavepointPurpose.MANUAL, format)

    @classmethod
    def suspend(cls, format: SavepointFormat = SavepointFormat.CANONICAL) -> "Savepoint":
        return cls(SavepointPurpose.SUSPEND, format)

    @classmethod
    def terminate(cls, format: SavepointFormat = SavepointFormat.CANONICAL) -> "Savepoint":
        return cls(SavepointPurpose.TERMINATE, format)


@dataclass(frozen=True)
class OrdinaryCheckpoint:
    """A periodic checkpoint, possibly unaligned."""

    checkpoint_type: CheckpointType = CheckpointType.CHECKPOINT
    unaligned: bool = False


# Loose internal kind, paired with a separate unaligned flag
SnapshotKind = CheckpointType | Savepoint

# Tight boundary type: unaligned lives only on the ordinary-checkpoint arm
CheckpointFlavor = OrdinaryCheckpoint | Savepoint


def classify(kind: SnapshotKind, unaligned: bool) -> ReportedKind:
    """Map a snapshot kind and unaligned flag to the reported kind.

    Args:
        kind: CheckpointType or Savepoint
        unaligned: Whether the snapshot skipped barrier alignment

    Returns:
        The reported kind for the pair

    Raises:
        InvalidClassificationError: If a savepoint is marked unaligned,
            or kind is not a snapshot kind
    """
    if isinstance(kind, CheckpointType):
        return ReportedKind.UNALIGNED_CHECKPOINT if unaligned else ReportedKind.CHECKPOINT

    if isinstance(kind, Savepoint):
        if unaligned:
            raise InvalidClassificationError(f"Savepoints cannot be unaligned (purpose={kind.purpose})")
        return ReportedKind.SYNC_SAVEPOINT if kind.is_synchronous else ReportedKind.SAVEPOINT

    raise InvalidClassificationError(f"Not a snapshot kind: {kind!r}")


def flavor_of(kind: SnapshotKind, unaligned: bool) -> CheckpointFlavor:
    """Convert the loose (kind, unaligned) pair into a CheckpointFlavor.

    Raises:
        InvalidClassificationError: For the same pairs classify() rejects
    """
    # Validate through the classifier so both paths reject identically
    classify(kind, unaligned)
    if isinstance(kind, Savepoint):
        return kind
    return OrdinaryCheckpoint(kind, unaligned)


def classify_flavor(flavor: CheckpointFlavor) -> ReportedKind:
    """Classify the tight representation.

    The runtime check in classify() still runs as a safety net.
    """
    if isinstance(flavor, OrdinaryCheckpoint):
        return classify(flavor.checkpoint_type, flavor.unaligned)
    return classify(flavor, False)
