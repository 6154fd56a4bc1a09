"""Property-based tests for snapshot serialization stability.

Monitoring clients compare documents byte for byte, so a snapshot must
serialize identically after a round trip through JSON.
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from checkpulse.contracts import CheckpointType, Savepoint, TaskAck
from checkpulse.core.canonical import stable_hash
from checkpulse.core.serialization import from_json, to_document, to_json
from checkpulse.core.status import CheckpointingStatus
from tests.property.settings import DETERMINISM_SETTINGS

# (kind, unaligned, ack sizes, outcome)
checkpoint_plans = st.lists(
    st.tuples(
        st.sampled_from([CheckpointType.CHECKPOINT, Savepoint.manual(), Savepoint.terminate()]),
        st.booleans(),
        st.lists(st.integers(min_value=0, max_value=10**9), max_size=3),
        st.sampled_from(["complete", "fail", "pending"]),
    ),
    max_size=12,
)


def _build_status(plans: list[tuple[CheckpointType | Savepoint, bool, list[int], str]]) -> CheckpointingStatus:
    status = CheckpointingStatus(history_size=5)
    for checkpoint_id, (kind, unaligned, sizes, outcome) in enumerate(plans):
        trigger_timestamp = checkpoint_id * 1_000
        status.on_triggered(
            checkpoint_id,
            kind,
            unaligned=unaligned and isinstance(kind, CheckpointType),
            trigger_timestamp=trigger_timestamp,
        )
        for offset, size in enumerate(sizes):
            ack = TaskAck(latest_ack_timestamp=trigger_timestamp + offset * 7, state_size=size)
            status.on_task_ack(checkpoint_id, f"vertex-{offset}", ack)
        if outcome == "complete":
            status.on_completed(checkpoint_id, external_path=f"/chk/{checkpoint_id}")
        elif outcome == "fail":
            status.on_failed(checkpoint_id, failure_message=f"failure {checkpoint_id}")
    return status


class TestSnapshotSerializationProperties:
    @given(plans=checkpoint_plans)
    @DETERMINISM_SETTINGS
    def test_round_trip_is_byte_stable(self, plans: list[tuple[CheckpointType | Savepoint, bool, list[int], str]]) -> None:
        snapshot = _build_status(plans).snapshot()
        text = to_json(snapshot)
        assert to_json(from_json(text)) == text

    @given(plans=checkpoint_plans)
    @DETERMINISM_SETTINGS
    def test_hash_is_deterministic(self, plans: list[tuple[CheckpointType | Savepoint, bool, list[int], str]]) -> None:
        first = _build_status(plans).snapshot()
        second = _build_status(plans).snapshot()
        assert stable_hash(to_document(first)) == stable_hash(to_document(second))

    @given(plans=checkpoint_plans)
    @DETERMINISM_SETTINGS
    def test_document_counts_are_consistent(self, plans: list[tuple[CheckpointType | Savepoint, bool, list[int], str]]) -> None:
        document = to_document(_build_status(plans).snapshot())
        counts = document["counts"]
        assert counts["total"] == len(plans)
        assert counts["in_progress"] == len(document["in_progress"])
        assert counts["total"] == counts["in_progress"] + counts["completed"] + counts["failed"]
        assert len(document["history"]) == min(counts["completed"] + counts["failed"], 5)
