"""
Build-Time and Query-Time Benchmarks

Repeated-trial measurement of the index variants. Each benchmark runs a
number of warmup trials that are executed but not recorded, followed by the
measured trials, and prints the collected series with their mean and
sample standard deviation.

Every build is a cold build: registry caches are cleared and the process is
given time to settle before the first trial and after every build. Memory
and time come from separate builds in each trial, so the timed build runs
without tracemalloc tracing.

Example:
    >>> registry = IndexRegistry()
    >>> bench = BuildBenchmark(registry, warmup_runs=1, measured_runs=3, settle_seconds=0)
    >>> result = bench.run(GridType.KD_TREE, coords)
    >>> result.build_times.n
    3
"""

import gc
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from .data_models import CurvilinearCoordinates, SampleDomain
from .exceptions import InvalidConfigurationError
from .geometry.base import CurvilinearIndex
from .geometry.registry import GridType, IndexRegistry
from .hpc.memory import HeapProbe
from .hpc.timing import StatsAccumulator


def _check_runs(warmup_runs: int, measured_runs: int) -> None:
    if warmup_runs < 0:
        raise InvalidConfigurationError(f"warmup_runs must be >= 0, got {warmup_runs}")
    if measured_runs < 1:
        raise InvalidConfigurationError(f"measured_runs must be >= 1, got {measured_runs}")


@dataclass
class BuildBenchmarkResult:
    """
    Series collected by one build benchmark.

    Attributes:
        memory_usage: Heap growth per build (bytes)
        build_times: Wall-clock build duration (seconds)
    """
    memory_usage: StatsAccumulator
    build_times: StatsAccumulator


class BuildBenchmark:
    """
    Measures construction time and heap growth of one index variant.

    Attributes:
        registry: Index factory and cache owner
        warmup_runs: Trials executed but not recorded
        measured_runs: Trials recorded
        settle_seconds: Pause after each collection
        heap_probe: Heap snapshot source (a tracemalloc probe by default)
    """

    def __init__(
        self,
        registry: IndexRegistry,
        warmup_runs: int,
        measured_runs: int,
        settle_seconds: float = 5.0,
        heap_probe: Optional[HeapProbe] = None,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
        out: TextIO = None
    ):
        _check_runs(warmup_runs, measured_runs)
        self.registry = registry
        self.warmup_runs = warmup_runs
        self.measured_runs = measured_runs
        self.settle_seconds = settle_seconds
        self.heap_probe = heap_probe if heap_probe is not None else HeapProbe(settle_seconds, sleep)
        self.clock = clock
        self._sleep = sleep
        self.out = out

    def _print(self, *args) -> None:
        print(*args, file=self.out if self.out is not None else sys.stdout)

    def _settle(self) -> None:
        gc.collect()
        if self.settle_seconds > 0:
            self._sleep(self.settle_seconds)

    def _release(self) -> None:
        self.registry.clear_all_caches()
        self._settle()

    def _timed_build(self, grid_type: GridType, coords: CurvilinearCoordinates) -> float:
        start = self.clock()
        index = self.registry.build(grid_type, coords)
        end = self.clock()
        del index
        self._release()
        return end - start

    def _traced_build(self, grid_type: GridType, coords: CurvilinearCoordinates) -> float:
        with self.heap_probe:
            memory_before = self.heap_probe.snapshot()
            index = self.registry.build(grid_type, coords)
            memory_after = self.heap_probe.snapshot()
        del index
        self._release()
        return memory_after - memory_before

    def run(self, grid_type, coords: CurvilinearCoordinates) -> BuildBenchmarkResult:
        """
        Run every trial and print the memory and build-time reports.

        Each trial builds the variant twice from cold: once under the heap
        probe for the memory delta and once with tracing off for the build
        time.

        Args:
            grid_type: GridType or integer tag of the variant to build
            coords: Source coordinate system

        Returns:
            BuildBenchmarkResult with ``measured_runs`` values per series

        Raises:
            InvalidConfigurationError: For an unknown grid type
        """
        grid_type = GridType.from_tag(grid_type)
        memory_usage = StatsAccumulator("Memory Usage")
        build_times = StatsAccumulator("Build Times")

        # Drop anything the registry already holds so the first trial is cold
        self._release()

        for i in range(self.warmup_runs + self.measured_runs):
            warmup = i < self.warmup_runs
            self._print("Performing warmup run" if warmup else "Performing benchmark run")

            memory = self._traced_build(grid_type, coords)
            elapsed = self._timed_build(grid_type, coords)

            if not warmup:
                memory_usage.record(memory)
                build_times.record(elapsed)

        out = self.out if self.out is not None else sys.stdout
        memory_usage.report(out=out)
        build_times.report(out=out)
        return BuildBenchmarkResult(memory_usage=memory_usage, build_times=build_times)


class QueryBenchmark:
    """
    Measures the average cost of a single nearest-cell query.

    Every query of a size × size domain over the index extent is timed on
    its own and the durations are summed, so the loop overhead between
    queries is excluded.
    """

    def __init__(
        self,
        warmup_runs: int,
        measured_runs: int,
        clock: Callable[[], float] = time.perf_counter,
        out: TextIO = None
    ):
        _check_runs(warmup_runs, measured_runs)
        self.warmup_runs = warmup_runs
        self.measured_runs = measured_runs
        self.clock = clock
        self.out = out

    def run(self, index: CurvilinearIndex, size: int) -> StatsAccumulator:
        """
        Time ``size * size`` queries per trial.

        Args:
            index: Built index (with querying parameters already applied)
            size: Edge length of the square sample domain

        Returns:
            StatsAccumulator of per-query averages (seconds)

        Raises:
            InvalidConfigurationError: If size < 1
        """
        if size < 1:
            raise InvalidConfigurationError(f"Sample size must be >= 1, got {size}")

        domain = SampleDomain(index.extent, size, size)
        positions = domain.positions()
        gridding_times = StatsAccumulator("Gridding Times")
        clock = self.clock

        for i in range(self.warmup_runs + self.measured_runs):
            total = 0.0
            for position in positions:
                start = clock()
                index.nearest(position)
                total += clock() - start

            if i >= self.warmup_runs:
                gridding_times.record(total / (size * size))

        gridding_times.report(out=self.out if self.out is not None else sys.stdout)
        return gridding_times
