"""
Interactive Tuning of Approximate KD-Tree Search

A menu-driven loop that lets an operator adjust the querying parameters,
run a full resample with them, and compare the per-query times of every run
so far in a results table. Commands are read as whitespace separated tokens
from any line source, so the loop can be scripted by passing a list of
strings instead of ``sys.stdin``.

Example:
    >>> commands = CommandReader(["2 0.1", "5", "4"])
    >>> loop = TuningLoop(index, domain, resample_fn, renderer, "test.png",
    ...                   defaults, commands)
    >>> records = loop.run_loop()
    >>> len(records)
    1
"""

import sys
import time
from dataclasses import replace
from typing import Callable, Iterable, Iterator, List, TextIO

import numpy as np

from .data_models import QueryingParameters, SampleDomain, TuningRecord
from .exceptions import InvalidConfigurationError, MalformedCommandError
from .geometry.base import CurvilinearIndex
from .rendering import ImageRenderer


MENU = (
    "0: Set Maximum Distance\n"
    "1: Set Expansion Factor\n"
    "2: Set Minimum Resolution\n"
    "3: Set Maximum Iterations\n"
    "4: Stop\n"
    "5: Run\n"
)

TABLE_HEADER = "MR              EF              MS              MI        Tp              Ti"

SET_MAXIMUM_DISTANCE = 0
SET_EXPANSION_FACTOR = 1
SET_MINIMUM_RESOLUTION = 2
SET_MAXIMUM_ITERATIONS = 3
STOP = 4
RUN = 5


class CommandReader:
    """
    Whitespace token scanner over an iterable of lines.

    Lines are pulled lazily, so reading from an interactive stream only
    blocks when a token is actually needed. A token that fails to parse is
    left in place; call ``skip`` to discard it.
    """

    def __init__(self, source: Iterable[str]):
        self._lines: Iterator[str] = iter(source)
        self._pending: List[str] = []

    def _fill(self) -> bool:
        while not self._pending:
            try:
                line = next(self._lines)
            except StopIteration:
                return False
            self._pending = line.split()
        return True

    def has_next(self) -> bool:
        """True if another token is available (may block on the source)."""
        return self._fill()

    def peek(self) -> str:
        if not self._fill():
            raise EOFError("No more commands")
        return self._pending[0]

    def skip(self) -> str:
        """Discard and return the next token."""
        token = self.peek()
        self._pending.pop(0)
        return token

    def next_int(self) -> int:
        """
        Consume the next token as an integer.

        Raises:
            MalformedCommandError: If the token is not an integer (not consumed)
            EOFError: If the source is exhausted
        """
        token = self.peek()
        try:
            value = int(token)
        except ValueError:
            raise MalformedCommandError(token, "integer") from None
        self._pending.pop(0)
        return value

    def next_float(self) -> float:
        """
        Consume the next token as a float.

        Raises:
            MalformedCommandError: If the token is not a number (not consumed)
            EOFError: If the source is exhausted
        """
        token = self.peek()
        try:
            value = float(token)
        except ValueError:
            raise MalformedCommandError(token, "number") from None
        self._pending.pop(0)
        return value


def format_record(record: TuningRecord, sample_count: int) -> str:
    """One tab separated row of the results table."""
    return "%f\t%f\t%f\t%d\t%f\t%f" % (
        record.minimum_resolution,
        record.expansion_factor,
        record.maximum_search_distance,
        record.max_iterations,
        record.per_query_time,
        record.total_time(sample_count)
    )


class TuningLoop:
    """
    Operator-driven parameter sweep over an approximate-search index.

    Attributes:
        index: Index that supports querying parameters (the KD-tree)
        domain: Output grid resampled on every run
        params: Current querying parameters
        records: One TuningRecord per completed run, oldest first
        stopped: True once Stop was read or the command source ran out
    """

    def __init__(
        self,
        index: CurvilinearIndex,
        domain: SampleDomain,
        resample: Callable[[CurvilinearIndex, SampleDomain], np.ndarray],
        renderer: ImageRenderer,
        output_path: str,
        defaults: QueryingParameters,
        commands: CommandReader,
        out: TextIO = None,
        clock: Callable[[], float] = time.perf_counter
    ):
        if not index.supports_approximate_search:
            raise InvalidConfigurationError(
                f"{index.name} does not support approximate search and cannot be tuned")
        self.index = index
        self.domain = domain
        self.resample = resample
        self.renderer = renderer
        self.output_path = output_path
        self.params = defaults.validate()
        self.commands = commands
        self.out = out
        self.clock = clock
        self.records: List[TuningRecord] = []
        self.stopped = False

    def _print(self, *args, **kwargs) -> None:
        print(*args, file=self.out if self.out is not None else sys.stdout, **kwargs)

    def run_loop(self) -> List[TuningRecord]:
        """
        Process commands until Stop or the end of the command stream.

        Returns:
            The records list
        """
        while not self.stopped:
            self._print(MENU, end="")
            try:
                self.step()
            except EOFError:
                self.stopped = True
        return self.records

    def step(self) -> None:
        """
        Read and execute one command.

        Raises:
            EOFError: If the command source is exhausted
        """
        try:
            command = self.commands.next_int()
            if command == SET_MAXIMUM_DISTANCE:
                self._update(maximum_search_distance=self.commands.next_float())
            elif command == SET_EXPANSION_FACTOR:
                self._update(expansion_factor=self.commands.next_float())
            elif command == SET_MINIMUM_RESOLUTION:
                self._update(minimum_resolution=self.commands.next_float())
            elif command == SET_MAXIMUM_ITERATIONS:
                self._update(max_iterations=self.commands.next_int())
            elif command == STOP:
                self.stopped = True
            elif command == RUN:
                self.run_once()
            else:
                # The unknown command number itself is the discarded token
                self._print("Unrecognised input")
        except MalformedCommandError:
            self._print("Unrecognised input")
            self.commands.skip()

    def _update(self, **changes) -> None:
        candidate = replace(self.params, **changes)
        try:
            self.params = candidate.validate()
        except InvalidConfigurationError as e:
            self._print(f"Invalid value: {e}")

    def run_once(self) -> TuningRecord:
        """
        Resample the domain with the current parameters and record the time.

        Returns:
            The record appended for this run
        """
        params = self.params
        self.index.set_querying_parameters(params)
        self._print(
            "Running with Expansion Factor = %f, Minimum Resolution = %f, Maximum Distance = %f"
            % (params.expansion_factor, params.minimum_resolution, params.maximum_search_distance)
        )

        sample_count = len(self.domain)
        start = self.clock()
        values = self.resample(self.index, self.domain)
        elapsed = self.clock() - start
        per_query = elapsed / sample_count

        self.renderer.render_to_file(values, self.domain.width, self.domain.height, self.output_path)

        record = TuningRecord.from_parameters(params, per_query)
        self.records.append(record)
        self.print_table()
        return record

    def print_table(self) -> None:
        """Print the header and one row per record, oldest first."""
        sample_count = len(self.domain)
        self._print(TABLE_HEADER)
        for record in self.records:
            self._print(format_record(record, sample_count))

