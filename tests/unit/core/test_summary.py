"""Unit tests for summary statistics."""

from __future__ import annotations

import math

import pytest

from checkpulse.contracts import SummaryStatistic
from checkpulse.core.summary import StatsSummary, fold_all


class TestFoldAll:
    def test_zero_samples_report_all_zero(self) -> None:
        assert fold_all([]) == SummaryStatistic()

    def test_single_sample_fills_every_field(self) -> None:
        summary = fold_all([50])
        assert summary == SummaryStatistic(
            min=50, max=50, average=50.0, p50=50.0, p90=50.0, p95=50.0, p99=50.0, p999=50.0
        )

    def test_known_distribution(self) -> None:
        summary = fold_all(range(1, 101))
        assert summary.min == 1
        assert summary.max == 100
        assert summary.average == pytest.approx(50.5)
        assert summary.p50 == pytest.approx(50.5)
        assert summary.p90 == pytest.approx(90.1)
        assert summary.p95 == pytest.approx(95.05)
        assert summary.p99 == pytest.approx(99.01)
        assert summary.p999 == pytest.approx(99.901)

    def test_average_need_not_match_a_percentile(self) -> None:
        summary = fold_all([1, 1, 1, 97])
        assert summary.average == pytest.approx(25.0)
        assert summary.p50 == pytest.approx(1.0)

    def test_order_does_not_matter(self) -> None:
        assert fold_all([5, 1, 3]) == fold_all([1, 3, 5])

    @pytest.mark.parametrize("bad", [-1, math.nan, math.inf])
    def test_rejects_invalid_samples(self, bad: float) -> None:
        with pytest.raises(ValueError, match="Summary samples must be"):
            fold_all([1, bad])


class TestStatsSummary:
    def test_empty_snapshot_is_all_zero(self) -> None:
        assert StatsSummary().snapshot() == SummaryStatistic()

    def test_matches_fold_all_within_window(self) -> None:
        samples = [12, 7, 300, 45, 45, 0, 9]
        summary = StatsSummary(window_size=len(samples))
        for value in samples:
            summary.add(value)
        assert summary.count == len(samples)
        assert summary.snapshot() == fold_all(samples)

    def test_percentiles_use_recent_window_only(self) -> None:
        summary = StatsSummary(window_size=3)
        for value in (1000, 1, 2, 3):
            summary.add(value)

        snapshot = summary.snapshot()
        # min/max/average cover every sample
        assert snapshot.min == 1
        assert snapshot.max == 1000
        assert snapshot.average == pytest.approx(1006 / 4)
        # percentiles cover the last three
        assert snapshot.p50 == pytest.approx(2.0)
        assert snapshot.p999 == pytest.approx(fold_all([1, 2, 3]).p999)

    def test_snapshot_is_recomputed_after_add(self) -> None:
        summary = StatsSummary()
        summary.add(10)
        first = summary.snapshot()
        summary.add(30)
        second = summary.snapshot()
        assert first.max == 10
        assert second.max == 30
        assert second.average == pytest.approx(20.0)

    def test_rejected_sample_leaves_summary_unchanged(self) -> None:
        summary = StatsSummary()
        summary.add(4)
        with pytest.raises(ValueError):
            summary.add(-4)
        assert summary.count == 1
        assert summary.snapshot() == fold_all([4])

    def test_window_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="window_size must be positive"):
            StatsSummary(window_size=0)
