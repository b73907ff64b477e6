"""
Benchmark Run Configuration

One dataclass holding every switch of a benchmarking session. It can be
built from command-line flags or from a JSON file, and validated before any
data is loaded so that bad tags fail fast.
"""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict
import json

from .datasets import get_dataset_profile
from .exceptions import InvalidConfigurationError
from .geometry.registry import GridType


@dataclass
class BenchmarkConfig:
    """
    Settings for one run of the harness.

    Attributes:
        dataset: Dataset profile tag (see gridbench.datasets)
        grid_type: Index variant tag (0 LUT, 1 KD-tree, 2 packed R-tree, 3 R-tree)
        perform_kdtree_tuning: Run the interactive tuning loop
        perform_buildtime_benchmarking: Run the build benchmark
        perform_querytime_benchmarking: Run the query benchmark
        produce_test_output: Render one image with the selected index
        test_output_filename: Image path for test output and tuning runs
        test_output_size: Edge length of the square output domain
        tries_per_parameter_set: Measured trials per benchmark
        warmup_runs: Unrecorded trials before measuring
        settle_seconds: Pause after each garbage collection
        max_iterations: Search expansions for the approximate KD-tree
        data_dir: Directory holding the dataset files
        palette: matplotlib colormap used for images
        style: Image style
    """
    dataset: int = 2
    grid_type: int = 3
    perform_kdtree_tuning: bool = False
    perform_buildtime_benchmarking: bool = True
    perform_querytime_benchmarking: bool = True
    produce_test_output: bool = True
    test_output_filename: str = "test.png"
    test_output_size: int = 256
    tries_per_parameter_set: int = 5
    warmup_runs: int = 3
    settle_seconds: float = 5.0
    max_iterations: int = 1
    data_dir: str = "."
    palette: str = "viridis"
    style: str = "boxfill"

    def validate(self) -> "BenchmarkConfig":
        """
        Check tags and counts.

        Raises:
            InvalidConfigurationError: On the first invalid setting
        """
        get_dataset_profile(self.dataset)
        GridType.from_tag(self.grid_type)
        if self.test_output_size < 1:
            raise InvalidConfigurationError(
                f"test_output_size must be >= 1, got {self.test_output_size}")
        if self.tries_per_parameter_set < 1:
            raise InvalidConfigurationError(
                f"tries_per_parameter_set must be >= 1, got {self.tries_per_parameter_set}")
        if self.warmup_runs < 0:
            raise InvalidConfigurationError(f"warmup_runs must be >= 0, got {self.warmup_runs}")
        if self.settle_seconds < 0:
            raise InvalidConfigurationError(
                f"settle_seconds must be >= 0, got {self.settle_seconds}")
        if self.max_iterations < 0:
            raise InvalidConfigurationError(
                f"max_iterations must be >= 0, got {self.max_iterations}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkConfig":
        """Create from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def save_to_json(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_from_json(cls, filepath: str) -> "BenchmarkConfig":
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)
