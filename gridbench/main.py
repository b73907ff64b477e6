"""
Main Entry Point for the Curvilinear Grid Index Benchmarks

This script provides a command-line interface for benchmarking the spatial
indexes used to resample curvilinear grids. It orchestrates:

1. Interactive tuning of the approximate KD-tree search (optional)
2. Build-time and heap usage benchmarking of one index variant
3. Query-time benchmarking of the same variant
4. A rendered test image resampled through the variant

Usage:
    # Benchmark the R-tree on the synthetic dataset without settling delays
    python -m gridbench.main --dataset 3 --grid-type 3 --settle 0

    # Tune the KD-tree interactively on the ORCA file in ./data
    python -m gridbench.main --dataset 0 --data-dir data --tune --no-build-benchmark

    # Run from a saved configuration
    python -m gridbench.main --config run.json
"""

import argparse
import sys
from typing import Iterable, List, Optional

import xarray as xr

from .benchmarking import BuildBenchmark, QueryBenchmark
from .config import BenchmarkConfig
from .data_models import CurvilinearCoordinates, QueryingParameters, SampleDomain
from .datasets import DatasetProfile, close_dataset, get_dataset_profile, load_profile
from .exceptions import InvalidConfigurationError
from .geometry.registry import GridType, IndexRegistry
from .hpc.timing import Timer
from .rendering import ImageRenderer
from .resampling import make_resampler, resample
from .tuning import CommandReader, TuningLoop


def print_header(config: BenchmarkConfig, profile: DatasetProfile):
    """Print application header."""
    print("=" * 70)
    print("  CURVILINEAR GRID SPATIAL INDEX BENCHMARKS")
    print("=" * 70)
    print()
    print("Configuration:")
    print("-" * 40)
    print(f"  Dataset: {profile.tag} ({profile.name})")
    print(f"  Index: {config.grid_type} ({GridType.from_tag(config.grid_type).label})")
    print(f"  Trials: {config.warmup_runs} warmup + {config.tries_per_parameter_set} measured")
    print(f"  Settle time: {config.settle_seconds} s")
    print(f"  Output: {config.test_output_filename} ({config.test_output_size}×{config.test_output_size})")
    print()


def run_kdtree_tuning(
    config: BenchmarkConfig,
    profile: DatasetProfile,
    dataset: xr.Dataset,
    variable: xr.DataArray,
    coords: CurvilinearCoordinates,
    registry: IndexRegistry,
    renderer: ImageRenderer,
    commands: Optional[Iterable[str]] = None
) -> List:
    """
    Run the interactive tuning loop on a KD-tree over the dataset.

    Args:
        commands: Line source for commands (defaults to stdin)

    Returns:
        TuningRecords of every run
    """
    index = registry.build(GridType.KD_TREE, coords)
    domain = SampleDomain(index.extent, config.test_output_size, config.test_output_size)
    loop = TuningLoop(
        index=index,
        domain=domain,
        resample=make_resampler(dataset, variable),
        renderer=renderer,
        output_path=config.test_output_filename,
        defaults=profile.default_querying_parameters(config.max_iterations),
        commands=CommandReader(commands if commands is not None else sys.stdin)
    )
    records = loop.run_loop()
    index.clear_querying_parameters()
    return records


def run_buildtime_benchmarking(config: BenchmarkConfig, coords: CurvilinearCoordinates,
                               registry: IndexRegistry):
    """Cold-build the selected variant repeatedly and report time and memory."""
    bench = BuildBenchmark(
        registry,
        warmup_runs=config.warmup_runs,
        measured_runs=config.tries_per_parameter_set,
        settle_seconds=config.settle_seconds
    )
    return bench.run(config.grid_type, coords)


def run_querytime_benchmarking(config: BenchmarkConfig, profile: DatasetProfile,
                               coords: CurvilinearCoordinates, registry: IndexRegistry):
    """Time single queries over the output domain with the selected variant."""
    index = registry.build(config.grid_type, coords)
    if index.supports_approximate_search:
        index.set_querying_parameters(profile.default_querying_parameters(config.max_iterations))

    print("Performing querytime benchmarking (dataset %d, index %d)" % (config.dataset, config.grid_type))
    bench = QueryBenchmark(
        warmup_runs=config.warmup_runs,
        measured_runs=config.tries_per_parameter_set
    )
    return bench.run(index, config.test_output_size)


def render_test_output(
    dataset: xr.Dataset,
    variable: xr.DataArray,
    coords: CurvilinearCoordinates,
    grid_type,
    output_path: str,
    size: int,
    registry: IndexRegistry,
    renderer: ImageRenderer,
    params: Optional[QueryingParameters] = None
):
    """
    Resample the whole dataset extent through one variant and write an image.

    Args:
        grid_type: Variant tag
        output_path: Image path (replaced if present)
        size: Edge length of the square output domain
        params: Querying parameters applied when the variant supports them

    Returns:
        The resampled values
    """
    index = registry.build(grid_type, coords)
    if params is not None and index.supports_approximate_search:
        index.set_querying_parameters(params)

    domain = SampleDomain(index.extent, size, size)
    with Timer("Test output resample"):
        values = resample(dataset, variable, index, domain)
    renderer.render_to_file(values, size, size, output_path)
    print(f"Test output written to: {output_path}")
    return values


def build_parser() -> argparse.ArgumentParser:
    """Command-line flags; unset flags fall back to the config file or defaults."""
    parser = argparse.ArgumentParser(
        description='Curvilinear Grid Spatial Index Benchmarks',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Datasets:   0=ORCA  1=UCA25D  2=EUMETSAT  3=SYNTHETIC
Grid types: 0=LookupTable  1=KdTree  2=PackedRTree  3=RTree

Examples:
  python -m gridbench.main --dataset 3 --grid-type 1 --settle 0
  python -m gridbench.main --dataset 3 --tune --no-build-benchmark --no-query-benchmark
        """
    )

    parser.add_argument('--config', '-c', type=str,
                        help='Load settings from a JSON configuration file')
    parser.add_argument('--save-config', type=str,
                        help='Write the effective configuration to a JSON file')

    data_group = parser.add_argument_group('Data')
    data_group.add_argument('--dataset', '-d', type=int,
                            help='Dataset profile tag (default: 2)')
    data_group.add_argument('--grid-type', '-t', type=int,
                            help='Index variant tag (default: 3)')
    data_group.add_argument('--data-dir', type=str,
                            help='Directory holding dataset files (default: .)')

    phase_group = parser.add_argument_group('Phases')
    phase_group.add_argument('--tune', dest='perform_kdtree_tuning', action='store_const', const=True,
                             help='Run interactive KD-tree tuning on stdin')
    phase_group.add_argument('--no-build-benchmark', dest='perform_buildtime_benchmarking',
                             action='store_const', const=False,
                             help='Skip build-time benchmarking')
    phase_group.add_argument('--no-query-benchmark', dest='perform_querytime_benchmarking',
                             action='store_const', const=False,
                             help='Skip query-time benchmarking')
    phase_group.add_argument('--no-test-output', dest='produce_test_output',
                             action='store_const', const=False,
                             help='Skip the rendered test image')

    bench_group = parser.add_argument_group('Benchmarking')
    bench_group.add_argument('--tries', dest='tries_per_parameter_set', type=int,
                             help='Measured trials per benchmark (default: 5)')
    bench_group.add_argument('--warmup', dest='warmup_runs', type=int,
                             help='Unrecorded warmup trials (default: 3)')
    bench_group.add_argument('--settle', dest='settle_seconds', type=float,
                             help='Seconds to wait after each collection (default: 5.0)')
    bench_group.add_argument('--max-iterations', type=int,
                             help='KD-tree search expansions (default: 1)')

    out_group = parser.add_argument_group('Output')
    out_group.add_argument('--output', '-o', dest='test_output_filename', type=str,
                           help='Image path (default: test.png)')
    out_group.add_argument('--size', '-s', dest='test_output_size', type=int,
                           help='Output edge length in pixels (default: 256)')
    out_group.add_argument('--palette', type=str,
                           help='matplotlib colormap (default: viridis)')
    out_group.add_argument('--style', type=str,
                           help='Image style (default: boxfill)')
    out_group.add_argument('--quiet', '-q', action='store_true',
                           help='Minimal output')
    return parser


def config_from_args(args: argparse.Namespace) -> BenchmarkConfig:
    """Overlay explicitly given flags on the config file (or the defaults)."""
    config = BenchmarkConfig.load_from_json(args.config) if args.config else BenchmarkConfig()
    overrides = {
        key: value for key, value in vars(args).items()
        if value is not None and key not in ('config', 'save_config', 'quiet')
    }
    data = config.to_dict()
    data.update(overrides)
    return BenchmarkConfig.from_dict(data).validate()


def run(config: BenchmarkConfig, quiet: bool = False, commands: Optional[Iterable[str]] = None) -> int:
    """Execute every enabled phase in order."""
    profile = get_dataset_profile(config.dataset)
    renderer = ImageRenderer(config.palette, config.style)
    registry = IndexRegistry()

    if not quiet:
        print_header(config, profile)

    dataset, variable, coords = load_profile(profile, config.data_dir)
    try:
        if config.perform_kdtree_tuning:
            print("Performing KDTree tuning")
            run_kdtree_tuning(config, profile, dataset, variable, coords, registry, renderer, commands)
            registry.clear_all_caches()

        if config.perform_buildtime_benchmarking:
            print("Performing buildtime benchmarking (dataset %d, index %d)" % (config.dataset, config.grid_type))
            run_buildtime_benchmarking(config, coords, registry)

        if config.perform_querytime_benchmarking:
            run_querytime_benchmarking(config, profile, coords, registry)

        if config.produce_test_output:
            render_test_output(
                dataset, variable, coords, config.grid_type,
                config.test_output_filename, config.test_output_size,
                registry, renderer,
                params=profile.default_querying_parameters(config.max_iterations)
            )
    finally:
        close_dataset(dataset)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        if args.save_config:
            config.save_to_json(args.save_config)
            print(f"Configuration saved to: {args.save_config}")
        return run(config, quiet=args.quiet)
    except InvalidConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
