"""
Tests for the Build-Time and Query-Time Benchmarks

Settle times are zero and clocks and heap probes are injected so the
recorded values are deterministic.

Run with: pytest tests/test_benchmarking.py -v
"""

import io
import time
import tracemalloc

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridbench.benchmarking import BuildBenchmark, QueryBenchmark
from gridbench.data_models import CurvilinearCoordinates, SampleDomain
from gridbench.exceptions import InvalidConfigurationError
from gridbench.geometry import CurvilinearIndex, GridType, IndexRegistry


@pytest.fixture
def coords():
    lat, lon = np.meshgrid(np.linspace(0, 1, 12), np.linspace(0, 2, 15), indexing='ij')
    return CurvilinearCoordinates(lon, lat)


class FakeClock:
    """Clock advancing by a fixed step on every read."""

    def __init__(self, step):
        self.step = step
        self.now = 0.0
        self.reads = 0

    def __call__(self):
        value = self.now
        self.now += self.step
        self.reads += 1
        return value


class FakeHeapProbe:
    """Heap probe whose snapshots grow by a fixed amount."""

    def __init__(self, step):
        self.step = step
        self.value = 0.0
        self.entered = 0

    def __enter__(self):
        self.entered += 1
        return self

    def __exit__(self, *args):
        pass

    def snapshot(self):
        self.value += self.step
        return self.value


class TracingClock:
    """Real clock that notes whether tracemalloc was active at each read."""

    def __init__(self):
        self.tracing = []

    def __call__(self):
        self.tracing.append(tracemalloc.is_tracing())
        return time.perf_counter()


class TracingRegistry(IndexRegistry):
    """Registry that notes whether tracemalloc was active at each build."""

    def __init__(self):
        super().__init__()
        self.tracing = []

    def build(self, tag, coords):
        self.tracing.append(tracemalloc.is_tracing())
        return super().build(tag, coords)


class CountingIndex(CurvilinearIndex):
    """Index that records every query and always answers cell 0."""

    name = "Counting"

    def __init__(self, coords):
        super().__init__(coords)
        self.queries = []

    @classmethod
    def generate(cls, coords, **options):
        return cls(coords)

    def _nearest_point(self, query):
        self.queries.append(tuple(query))
        return 0


class TestBuildBenchmark:
    """Tests for the build benchmark protocol."""

    def test_records_measured_runs_only(self, coords):
        """Warmup trials are executed but not recorded."""
        registry = IndexRegistry()
        bench = BuildBenchmark(registry, warmup_runs=2, measured_runs=3,
                               settle_seconds=0, out=io.StringIO())

        result = bench.run(GridType.KD_TREE, coords)

        assert result.build_times.n == 3
        assert result.memory_usage.n == 3
        assert registry.build_count == 2 * 5

    def test_every_trial_is_cold(self, coords):
        """Caches are cleared after every build."""
        registry = IndexRegistry()
        BuildBenchmark(registry, 1, 2, settle_seconds=0, out=io.StringIO()).run(GridType.RTREE, coords)

        assert registry.build_count == 2 * 3
        assert not registry.is_cached(GridType.RTREE, coords)

    def test_deterministic_values(self, coords):
        """Injected clock and heap probe give exact series."""
        bench = BuildBenchmark(
            IndexRegistry(), warmup_runs=1, measured_runs=4, settle_seconds=0,
            heap_probe=FakeHeapProbe(100.0), clock=FakeClock(0.25), out=io.StringIO()
        )

        result = bench.run(GridType.PACKED_RTREE, coords)

        assert result.build_times.values == [0.25] * 4
        assert result.memory_usage.values == [100.0] * 4
        assert result.build_times.summarize().sample_stddev == 0.0

    def test_settles_around_each_build(self, coords):
        """The settle delay runs once up front and after each of the two builds per trial."""
        slept = []
        bench = BuildBenchmark(
            IndexRegistry(), warmup_runs=2, measured_runs=2, settle_seconds=1.0,
            heap_probe=FakeHeapProbe(1.0), sleep=slept.append, out=io.StringIO()
        )

        bench.run(GridType.LOOKUP_TABLE, coords)

        assert slept == [1.0] * (1 + 2 * 4)

    def test_prebuilt_index_is_not_measured(self, coords):
        """An index already cached in the registry is dropped before the first trial."""
        registry = IndexRegistry()
        registry.build(GridType.RTREE, coords)
        before = registry.build_count

        result = BuildBenchmark(registry, 0, 2, settle_seconds=0, out=io.StringIO()).run(GridType.RTREE, coords)

        assert registry.build_count - before == 2 * 2
        assert result.build_times.n == 2
        assert not registry.is_cached(GridType.RTREE, coords)

    def test_timed_build_runs_untraced(self, coords):
        """Memory comes from a traced build, time from a separate untraced one."""
        registry = TracingRegistry()
        clock = TracingClock()
        bench = BuildBenchmark(registry, 1, 2, settle_seconds=0, clock=clock, out=io.StringIO())

        result = bench.run(GridType.KD_TREE, coords)

        assert registry.tracing == [True, False] * 3
        assert clock.tracing == [False] * (2 * 3)
        assert not tracemalloc.is_tracing()
        assert all(v > 0 for v in result.memory_usage.values)

    def test_printed_output(self, coords):
        """Trial banners then the memory and build-time reports."""
        out = io.StringIO()
        BuildBenchmark(IndexRegistry(), 2, 3, settle_seconds=0, out=out).run(1, coords)
        text = out.getvalue()

        assert text.count("Performing warmup run") == 2
        assert text.count("Performing benchmark run") == 3
        assert text.index("Memory Usage") < text.index("Build Times")

    def test_invalid_tag(self, coords):
        """An unknown tag fails before any trial runs."""
        registry = IndexRegistry()
        out = io.StringIO()

        with pytest.raises(InvalidConfigurationError):
            BuildBenchmark(registry, 1, 1, settle_seconds=0, out=out).run(4, coords)

        assert registry.build_count == 0
        assert out.getvalue() == ""

    @pytest.mark.parametrize("warmup,measured", [(-1, 3), (0, 0)])
    def test_invalid_run_counts(self, warmup, measured):
        """Run counts are validated up front."""
        with pytest.raises(InvalidConfigurationError):
            BuildBenchmark(IndexRegistry(), warmup, measured)


class TestQueryBenchmark:
    """Tests for the query benchmark protocol."""

    def test_query_count(self, coords):
        """Each trial queries every position of the size × size domain."""
        index = CountingIndex.generate(coords)
        bench = QueryBenchmark(warmup_runs=1, measured_runs=2, out=io.StringIO())

        stats = bench.run(index, 4)

        assert len(index.queries) == 3 * 16
        assert stats.n == 2

    def test_query_order(self, coords):
        """Queries follow the sample domain order, top row first."""
        index = CountingIndex.generate(coords)
        QueryBenchmark(0, 1, out=io.StringIO()).run(index, 3)

        expected = SampleDomain(coords.extent, 3, 3).positions()
        assert np.allclose(np.array(index.queries), expected)
        assert index.queries[0][1] > index.queries[-1][1]

    def test_per_query_average(self, coords):
        """Each query costs one clock step, so the average is one step."""
        clock = FakeClock(0.5)
        bench = QueryBenchmark(warmup_runs=0, measured_runs=3, clock=clock, out=io.StringIO())

        stats = bench.run(CountingIndex.generate(coords), 5)

        assert stats.values == [0.5] * 3
        assert clock.reads == 2 * 25 * 3

    def test_real_index(self, coords):
        """A real index produces positive timings."""
        index = IndexRegistry().build(GridType.KD_TREE, coords)
        stats = QueryBenchmark(1, 2, out=io.StringIO()).run(index, 8)

        assert stats.n == 2
        assert all(v >= 0 for v in stats.values)

    def test_printed_output(self, coords):
        """The report is titled Gridding Times."""
        out = io.StringIO()
        QueryBenchmark(0, 2, out=out).run(CountingIndex.generate(coords), 2)
        assert out.getvalue().splitlines()[0] == "Gridding Times"

    @pytest.mark.parametrize("size", [0, -3])
    def test_invalid_size(self, coords, size):
        """Sizes below one are rejected."""
        index = CountingIndex.generate(coords)
        with pytest.raises(InvalidConfigurationError):
            QueryBenchmark(0, 1, out=io.StringIO()).run(index, size)
        assert index.queries == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
