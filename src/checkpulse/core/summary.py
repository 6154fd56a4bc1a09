# src/checkpulse/core/summary.py
"""Distributional summaries over checkpoint metrics.

fold_all() summarizes a complete sample set. StatsSummary is the running
collector kept by the status aggregate:

- count, sum, min and max are exact over every sample ever added
- percentiles are exact over the most recent ``window_size`` samples

So while a job has taken no more than ``window_size`` completed
checkpoints, every field equals fold_all() over the same samples. Past
that point percentiles describe the recent window only.

Percentiles use linear interpolation between closest ranks (numpy's
default ``linear`` method).
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterable, Sequence

import numpy as np

from checkpulse.contracts.stats import SummaryStatistic

PERCENTILES: tuple[float, ...] = (50.0, 90.0, 95.0, 99.0, 99.9)


def _validate_sample(value: int | float) -> None:
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Summary samples must be finite, got {value}")
    if value < 0:
        raise ValueError(f"Summary samples must be non-negative, got {value}")


def _percentiles(window: Sequence[int | float], low: int | float, high: int | float) -> list[float]:
    values = np.percentile(np.asarray(window, dtype=np.float64), PERCENTILES)
    # Clamp guards against interpolation rounding past the observed range
    return [min(max(float(v), float(low)), float(high)) for v in values]


def fold_all(samples: Iterable[int | float]) -> SummaryStatistic:
    """Summarize a full sample set.

    Args:
        samples: Non-negative finite values

    Returns:
        SummaryStatistic over all samples (all zeros when empty)

    Raises:
        ValueError: If a sample is negative or non-finite
    """
    values = list(samples)
    for value in values:
        _validate_sample(value)
    if not values:
        return SummaryStatistic.empty()

    low = min(values)
    high = max(values)
    p50, p90, p95, p99, p999 = _percentiles(values, low, high)
    return SummaryStatistic(
        min=low,
        max=high,
        average=min(max(sum(values) / len(values), low), high),
        p50=p50,
        p90=p90,
        p95=p95,
        p99=p99,
        p999=p999,
    )


class StatsSummary:
    """Running summary of one metric.

    Not thread-safe on its own; CheckpointingStatus serializes access.
    """

    def __init__(self, window_size: int = 10_000) -> None:
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self._window: deque[int | float] = deque(maxlen=window_size)
        self._count = 0
        self._sum: int | float = 0
        self._min: int | float = 0
        self._max: int | float = 0

    @property
    def count(self) -> int:
        return self._count

    def add(self, value: int | float) -> None:
        """Add a sample.

        Raises:
            ValueError: If value is negative or non-finite
        """
        _validate_sample(value)
        if self._count == 0:
            self._min = value
            self._max = value
        else:
            self._min = min(self._min, value)
            self._max = max(self._max, value)
        self._count += 1
        self._sum += value
        self._window.append(value)

    def snapshot(self) -> SummaryStatistic:
        """Recompute the summary from the current samples."""
        if self._count == 0:
            return SummaryStatistic.empty()

        p50, p90, p95, p99, p999 = _percentiles(self._window, self._min, self._max)
        return SummaryStatistic(
            min=self._min,
            max=self._max,
            average=min(max(self._sum / self._count, self._min), self._max),
            p50=p50,
            p90=p90,
            p95=p95,
            p99=p99,
            p999=p999,
        )
