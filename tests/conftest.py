# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from checkpulse.contracts import CheckpointType, TaskAck
from checkpulse.core.status import CheckpointingStatus

# =============================================================================
# Status Fixtures
# =============================================================================


@pytest.fixture
def status() -> CheckpointingStatus:
    """Empty status with a small history so eviction is easy to reach."""
    return CheckpointingStatus(history_size=3)


def complete_checkpoint(
    status: CheckpointingStatus,
    checkpoint_id: int,
    *,
    trigger_timestamp: int = 1_000,
    duration: int = 10,
    state_size: int = 100,
) -> None:
    """Trigger, ack and complete an aligned checkpoint in one step."""
    status.on_triggered(checkpoint_id, CheckpointType.CHECKPOINT, trigger_timestamp=trigger_timestamp)
    status.on_task_ack(
        checkpoint_id,
        "vertex-a",
        TaskAck(latest_ack_timestamp=trigger_timestamp + duration, state_size=state_size),
    )
    status.on_completed(checkpoint_id, duration=duration)


# =============================================================================
# Hypothesis Profiles
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
