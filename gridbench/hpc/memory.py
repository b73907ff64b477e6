"""
Heap Usage Snapshots

Memory deltas are measured with :mod:`tracemalloc`: force a collection,
wait for deferred reclamation to settle, then read the traced size. NumPy
reports its buffer allocations to tracemalloc, so index arrays are
included.
"""

import gc
import time
import tracemalloc
from typing import Callable


class HeapProbe:
    """
    Reads the current traced heap size after a forced collection.

    Use as a context manager around the operation being measured only, since
    tracing slows allocation-heavy code. Tracing is started on entry if it
    is not already running and stopped on exit only if this probe started it.

    Example:
        >>> with HeapProbe(settle_seconds=0.0) as probe:
        ...     before = probe.snapshot()
        ...     data = bytearray(10_000_000)
        ...     after = probe.snapshot()
        >>> after - before >= 10_000_000
        True
    """

    def __init__(self, settle_seconds: float = 5.0, sleep: Callable[[float], None] = time.sleep):
        self.settle_seconds = settle_seconds
        self._sleep = sleep
        self._started_tracing = False

    def __enter__(self) -> 'HeapProbe':
        if not tracemalloc.is_tracing():
            tracemalloc.start()
            self._started_tracing = True
        return self

    def __exit__(self, *args) -> None:
        if self._started_tracing:
            tracemalloc.stop()
            self._started_tracing = False

    def settle(self) -> None:
        """Force a full collection and wait the configured settle time."""
        gc.collect()
        if self.settle_seconds > 0:
            self._sleep(self.settle_seconds)

    def snapshot(self) -> float:
        """
        Heap bytes in use after collection and settling.

        Returns:
            Current traced size in bytes (0 if tracing is not active)
        """
        self.settle()
        if not tracemalloc.is_tracing():
            return 0.0
        current, _ = tracemalloc.get_traced_memory()
        return float(current)
