"""
High-Performance Computing Module

This module provides measurement utilities for the benchmarking harness.

Components:
- timing: Timer, statistics accumulation and speedup helpers
- memory: Heap snapshots with forced collection and settling
"""

from .timing import (
    Timer,
    compute_speedup,
    StatsAccumulator,
    StatsSummary
)
from .memory import HeapProbe

__all__ = [
    'Timer',
    'compute_speedup',
    'StatsAccumulator',
    'StatsSummary',
    'HeapProbe'
]
