"""
Timing and Statistics Utilities

This module provides utilities for measuring code execution time and for
aggregating repeated benchmark measurements.

Features:
- Timer context manager for easy timing
- StatsAccumulator for repeated scalar measurements (mean, sample stddev)
- Speedup calculation for comparing index variants

Example:
    >>> with Timer("Index build") as t:
    ...     index = KdTreeIndex.generate(coords)
    >>> print(f"Took {t.elapsed_ms:.2f} ms")

    >>> stats = StatsAccumulator("Build Times")
    >>> for value in (1.0, 2.0, 3.0):
    ...     stats.record(value)
    >>> stats.summarize().sample_stddev
    1.0
"""

import sys
import time
import statistics
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, TextIO

from ..exceptions import DegenerateSampleError


class Timer:
    """
    Context manager for timing code blocks.

    Provides high-resolution timing using time.perf_counter().

    Attributes:
        name: Optional name for the timed operation
        elapsed: Elapsed time in seconds
        elapsed_ms: Elapsed time in milliseconds
        elapsed_us: Elapsed time in microseconds

    Example:
        >>> with Timer("Resample 256x256") as t:
        ...     values = resample(dataset, variable, index, domain)
        Resample 256x256: 153.23 ms
    """

    def __init__(self, name: Optional[str] = None, verbose: bool = True, clock=time.perf_counter):
        """
        Initialize timer.

        Args:
            name: Optional name to print with timing
            verbose: Whether to print timing on exit
            clock: Zero-argument callable returning seconds
        """
        self.name = name
        self.verbose = verbose
        self.clock = clock
        self._start: float = 0
        self._end: float = 0
        self.elapsed: float = 0

    def __enter__(self) -> 'Timer':
        """Start the timer."""
        self._start = self.clock()
        return self

    def __exit__(self, *args) -> None:
        """Stop the timer and optionally print result."""
        self._end = self.clock()
        self.elapsed = self._end - self._start

        if self.verbose and self.name:
            print(f"{self.name}: {self.elapsed_ms:.2f} ms")

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        return self.elapsed * 1000

    @property
    def elapsed_us(self) -> float:
        """Elapsed time in microseconds."""
        return self.elapsed * 1_000_000


def compute_speedup(baseline_time: float, optimized_time: float) -> float:
    """
    Compute speedup ratio between baseline and optimized times.

    Speedup = baseline_time / optimized_time

    A speedup > 1 means the optimized version is faster.

    Args:
        baseline_time: Time for baseline implementation
        optimized_time: Time for optimized implementation

    Returns:
        Speedup ratio

    Example:
        >>> speedup = compute_speedup(100.0, 25.0)
        >>> print(f"Speedup: {speedup:.2f}x")
        Speedup: 4.00x
    """
    if optimized_time <= 0:
        return float('inf')
    return baseline_time / optimized_time


@dataclass(frozen=True)
class StatsSummary:
    """Mean and unbiased sample standard deviation of a series."""
    mean: float
    sample_stddev: float


@dataclass
class StatsAccumulator:
    """
    Collects repeated scalar measurements for one metric.

    Values are kept in recording order. Warmup trials are expected to be
    filtered out by the caller before ``record`` is called.

    Attributes:
        name: Title used when reporting
        values: Recorded measurements, in order
    """
    name: str = ""
    values: List[float] = field(default_factory=list)

    def record(self, value: float) -> None:
        """Append one measurement."""
        self.values.append(float(value))

    @property
    def n(self) -> int:
        """Number of recorded measurements."""
        return len(self.values)

    @property
    def min(self) -> float:
        return min(self.values) if self.values else 0.0

    @property
    def max(self) -> float:
        return max(self.values) if self.values else 0.0

    def summarize(self) -> StatsSummary:
        """
        Compute mean and sample standard deviation.

        The standard deviation divides the sum of squared deviations by
        n - 1.

        Returns:
            StatsSummary over every recorded value

        Raises:
            DegenerateSampleError: If fewer than two values are recorded
        """
        if self.n < 2:
            raise DegenerateSampleError(self.n)
        return StatsSummary(
            mean=statistics.mean(self.values),
            sample_stddev=statistics.stdev(self.values)
        )

    def report(self, title: Optional[str] = None, out: TextIO = None) -> None:
        """
        Print the raw values followed by mean and standard deviation.

        Layout: title, one value per line, ``---``, mean, stddev, ``---``.
        Statistics that cannot be computed are printed as ``undefined``.

        Args:
            title: Heading line (defaults to the accumulator name)
            out: Stream to write to (defaults to stdout)
        """
        out = out if out is not None else sys.stdout
        print(title if title is not None else self.name, file=out)
        for value in self.values:
            print(value, file=out)
        print("---", file=out)

        try:
            summary = self.summarize()
            mean, stddev = summary.mean, summary.sample_stddev
        except DegenerateSampleError:
            mean = self.values[0] if self.values else "undefined"
            stddev = "undefined"

        print(mean, file=out)
        print(stddev, file=out)
        print("---", file=out)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'values': list(self.values),
            'n': self.n
        }
