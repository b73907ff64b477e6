#!/usr/bin/env python3
"""
Benchmark Script: Index Variant Comparison

This script runs the build-time and query-time benchmarks for every index
variant on synthetic curvilinear grids of increasing size:

0. LookupTable: raster of precomputed nearest cells
1. KdTree: approximate iterative search with default parameters
2. PackedRTree: STR bulk-loaded R-tree
3. RTree: dynamically built quadratic-split R-tree

Results are printed as a summary table; nothing is written to disk.

Usage:
    python benchmarks/compare_index_variants.py
    python benchmarks/compare_index_variants.py --sizes 50,100 --trials 5 --settle 0.5
"""

import argparse
import io
import sys
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridbench.benchmarking import BuildBenchmark, QueryBenchmark
from gridbench.data_models import QueryingParameters
from gridbench.datasets import coordinates_from_dataset
from gridbench.geometry.registry import GridType, IndexRegistry
from gridbench.hpc.timing import StatsAccumulator, compute_speedup
from gridbench.synthetic_data import generate_benchmark_datasets


def _mean(stats: StatsAccumulator) -> float:
    return float(np.mean(stats.values)) if stats.values else float('nan')


def _std(stats: StatsAccumulator) -> float:
    return float(np.std(stats.values, ddof=1)) if stats.n > 1 else float('nan')


def run_benchmark_suite(
    sizes: List[int],
    n_trials: int,
    warmup_runs: int,
    settle_seconds: float,
    query_size: int,
    verbose: bool = True
) -> List[Dict[str, Any]]:
    """
    Benchmark every variant on every grid size.

    Returns:
        One result dict per (size, variant)
    """
    results = []
    datasets = generate_benchmark_datasets(sizes)
    out = sys.stdout if verbose else io.StringIO()

    for size, ds in datasets.items():
        coords = coordinates_from_dataset(ds, ds["sea_level"])
        spacing = coords.nominal_resolution
        params = QueryingParameters(spacing, 2.0, 5 * spacing, 2)

        if verbose:
            print(f"\nBenchmarking {size}×{size} grid ({coords.size} cells)")

        for grid_type in GridType:
            registry = IndexRegistry()
            if verbose:
                print(f"\n--- {grid_type.label} ---")

            build = BuildBenchmark(
                registry,
                warmup_runs=warmup_runs,
                measured_runs=n_trials,
                settle_seconds=settle_seconds,
                out=out
            ).run(grid_type, coords)

            index = registry.build(grid_type, coords)
            if index.supports_approximate_search:
                index.set_querying_parameters(params)
            gridding = QueryBenchmark(
                warmup_runs=warmup_runs,
                measured_runs=n_trials,
                out=out
            ).run(index, query_size)

            results.append({
                'grid_size': size,
                'num_cells': coords.size,
                'variant': grid_type.label,
                'build_mean_ms': _mean(build.build_times) * 1000,
                'build_std_ms': _std(build.build_times) * 1000,
                'memory_mean_mb': _mean(build.memory_usage) / 1e6,
                'query_mean_us': _mean(gridding) * 1e6,
            })

    return results


def print_results_table(results: List[Dict[str, Any]]):
    """Print formatted results table."""
    print("\n" + "=" * 90)
    print("INDEX VARIANT SUMMARY")
    print("=" * 90)

    print(f"{'Cells':>8} {'Variant':>12} {'Build(ms)':>12} {'±':>8} "
          f"{'Memory(MB)':>12} {'Query(us)':>12} {'vs LUT':>8}")
    print("-" * 90)

    baseline = {}
    for r in results:
        if r['variant'] == GridType.LOOKUP_TABLE.label:
            baseline[r['num_cells']] = r['query_mean_us']

    for r in results:
        ratio = compute_speedup(r['query_mean_us'], baseline.get(r['num_cells'], np.nan))
        print(f"{r['num_cells']:>8} {r['variant']:>12} {r['build_mean_ms']:>12.2f} "
              f"{r['build_std_ms']:>8.2f} {r['memory_mean_mb']:>12.2f} "
              f"{r['query_mean_us']:>12.2f} {ratio:>7.2f}×")

    print("=" * 90)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Compare build and query cost of every curvilinear index variant'
    )
    parser.add_argument(
        '--sizes', type=str, default='50,100,200',
        help='Comma-separated grid edge lengths (default: 50,100,200)'
    )
    parser.add_argument(
        '--trials', type=int, default=3,
        help='Measured trials per benchmark (default: 3)'
    )
    parser.add_argument(
        '--warmup', type=int, default=1,
        help='Warmup trials per benchmark (default: 1)'
    )
    parser.add_argument(
        '--settle', type=float, default=0.0,
        help='Seconds to wait after each collection (default: 0)'
    )
    parser.add_argument(
        '--query-size', type=int, default=64,
        help='Edge length of the query domain (default: 64)'
    )
    parser.add_argument(
        '--quiet', '-q', action='store_true',
        help='Minimal output'
    )

    args = parser.parse_args()

    sizes = [int(s.strip()) for s in args.sizes.split(',')]

    if not args.quiet:
        print("=" * 60)
        print("  CURVILINEAR INDEX BENCHMARK")
        print("  LookupTable vs KdTree vs PackedRTree vs RTree")
        print("=" * 60)
        print(f"\nGrid sizes: {sizes}")
        print(f"Trials: {args.warmup} warmup + {args.trials} measured")

    results = run_benchmark_suite(
        sizes, args.trials, args.warmup, args.settle, args.query_size,
        verbose=not args.quiet
    )

    print_results_table(results)

    return 0


if __name__ == "__main__":
    sys.exit(main())
