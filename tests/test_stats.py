"""
Tests for Timing, Statistics and Heap Measurement

Run with: pytest tests/test_stats.py -v
"""

import io

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridbench.exceptions import DegenerateSampleError
from gridbench.hpc import HeapProbe, StatsAccumulator, Timer, compute_speedup


class TestStatsAccumulator:
    """Tests for mean and sample standard deviation."""

    def test_constant_series(self):
        """A constant series has that mean and zero deviation."""
        stats = StatsAccumulator("Build Times")
        for _ in range(5):
            stats.record(2.5)

        summary = stats.summarize()

        assert summary.mean == 2.5
        assert summary.sample_stddev == 0.0

    def test_known_values(self):
        """The deviation uses the n - 1 estimator."""
        stats = StatsAccumulator(values=[1.0, 2.0, 3.0, 4.0])
        summary = stats.summarize()

        assert np.isclose(summary.mean, 2.5)
        assert np.isclose(summary.sample_stddev, np.std([1, 2, 3, 4], ddof=1))

    def test_stddev_non_negative(self):
        """Random series never produce a negative deviation."""
        np.random.seed(42)
        for _ in range(20):
            stats = StatsAccumulator()
            for value in np.random.randn(np.random.randint(2, 30)) * 1e3:
                stats.record(value)
            assert stats.summarize().sample_stddev >= 0.0

    @pytest.mark.parametrize("values", [[], [3.0]])
    def test_degenerate_sample(self, values):
        """Fewer than two values cannot be summarised."""
        stats = StatsAccumulator(values=list(values))
        with pytest.raises(DegenerateSampleError):
            stats.summarize()

    def test_records_in_order(self):
        """Values are kept in recording order."""
        stats = StatsAccumulator()
        for value in (3, 1, 2):
            stats.record(value)

        assert stats.values == [3.0, 1.0, 2.0]
        assert stats.n == 3
        assert stats.min == 1.0
        assert stats.max == 3.0


class TestStatsReport:
    """Tests for the printed report layout."""

    def test_report_layout(self):
        """Title, values, separator, mean, deviation, separator."""
        stats = StatsAccumulator("Memory Usage", [1.0, 3.0])
        out = io.StringIO()

        stats.report(out=out)

        lines = out.getvalue().splitlines()
        assert lines[0] == "Memory Usage"
        assert lines[1:3] == ["1.0", "3.0"]
        assert lines[3] == "---"
        assert float(lines[4]) == 2.0
        assert np.isclose(float(lines[5]), np.sqrt(2.0))
        assert lines[6] == "---"

    def test_report_title_override(self):
        """An explicit title replaces the accumulator name."""
        out = io.StringIO()
        StatsAccumulator("a", [1.0, 1.0]).report("Gridding Times", out=out)
        assert out.getvalue().splitlines()[0] == "Gridding Times"

    def test_report_single_value(self):
        """One value: the mean is printed, the deviation is undefined."""
        out = io.StringIO()
        StatsAccumulator("Build Times", [0.5]).report(out=out)

        lines = out.getvalue().splitlines()
        assert lines == ["Build Times", "0.5", "---", "0.5", "undefined", "---"]

    def test_report_empty(self):
        """No values: both statistics are undefined."""
        out = io.StringIO()
        StatsAccumulator("Build Times").report(out=out)

        lines = out.getvalue().splitlines()
        assert lines == ["Build Times", "---", "undefined", "undefined", "---"]


class FakeClock:
    """Clock advancing by a fixed step on every read."""

    def __init__(self, step):
        self.step = step
        self.now = 0.0

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class TestTimer:
    """Tests for the Timer context manager."""

    def test_elapsed_with_injected_clock(self):
        """Elapsed time is the difference of two clock reads."""
        with Timer(verbose=False, clock=FakeClock(0.25)) as t:
            pass

        assert t.elapsed == 0.25
        assert t.elapsed_ms == 250.0
        assert t.elapsed_us == 250_000.0

    def test_verbose_prints_name(self, capsys):
        """A named verbose timer prints its duration."""
        with Timer("Resample", clock=FakeClock(0.5)):
            pass

        assert "Resample: 500.00 ms" in capsys.readouterr().out

    def test_compute_speedup(self):
        """Speedup is baseline over optimized."""
        assert compute_speedup(100.0, 25.0) == 4.0
        assert compute_speedup(1.0, 0.0) == float('inf')


class TestHeapProbe:
    """Tests for heap snapshots."""

    def test_allocation_is_visible(self):
        """A large array shows up as heap growth."""
        with HeapProbe(settle_seconds=0.0) as probe:
            before = probe.snapshot()
            data = np.ones(1_000_000)
            after = probe.snapshot()
            assert data.nbytes == 8_000_000

        assert after - before >= 7_000_000

    def test_settle_sleeps(self):
        """Each snapshot waits the configured settle time."""
        slept = []
        with HeapProbe(settle_seconds=1.5, sleep=slept.append) as probe:
            probe.snapshot()
            probe.snapshot()

        assert slept == [1.5, 1.5]

    def test_no_sleep_when_zero(self):
        """A zero settle time never sleeps."""
        slept = []
        HeapProbe(settle_seconds=0.0, sleep=slept.append).settle()
        assert slept == []

    def test_not_tracing_reads_zero(self):
        """Outside the context manager no heap is traced."""
        import tracemalloc
        if tracemalloc.is_tracing():
            pytest.skip("tracemalloc already active")
        assert HeapProbe(settle_seconds=0.0).snapshot() == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
