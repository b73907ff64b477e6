"""
Error Taxonomy for the Grid Benchmarking Harness

Configuration problems are fatal, malformed operator input is recovered
inside the tuning loop, and degenerate statistics are left to the caller
to report.
"""


class GridBenchError(Exception):
    """Base class for all harness errors."""


class InvalidConfigurationError(GridBenchError, ValueError):
    """Unknown dataset/grid tag, invalid querying parameters or sizes."""


class MalformedCommandError(GridBenchError, ValueError):
    """A tuning-loop token that cannot be parsed as the expected value."""

    def __init__(self, token: str, expected: str):
        super().__init__(f"Expected {expected}, got {token!r}")
        self.token = token
        self.expected = expected


class DegenerateSampleError(GridBenchError, ArithmeticError):
    """Fewer than two measurements available for a standard deviation."""

    def __init__(self, n: int):
        super().__init__(f"Sample standard deviation needs at least 2 values, got {n}")
        self.n = n


class UnsupportedOperationError(GridBenchError, NotImplementedError):
    """Operation not offered by this spatial index variant."""
