"""Snapshot <-> JSON document conversion for monitoring clients.

Documents are canonical JSON, so serialize -> deserialize -> serialize
yields identical bytes for a given snapshot.
"""

import json
from typing import Any

from checkpulse.contracts.stats import CheckpointingStatisticsSnapshot
from checkpulse.core.canonical import canonical_json


def to_document(snapshot: CheckpointingStatisticsSnapshot) -> dict[str, Any]:
    """Structured document for a snapshot (JSON-compatible values only)."""
    document: dict[str, Any] = json.loads(to_json(snapshot))
    return document


def to_json(snapshot: CheckpointingStatisticsSnapshot) -> str:
    """Serialize a snapshot to canonical JSON."""
    return canonical_json(snapshot.to_dict())


def from_json(text: str | bytes) -> CheckpointingStatisticsSnapshot:
    """Rebuild a snapshot from to_json() output.

    Raises:
        ValueError: If text is not valid JSON or a field has an invalid value
        KeyError: If a required field is missing
    """
    data = json.loads(text)
    return CheckpointingStatisticsSnapshot.from_dict(data)
