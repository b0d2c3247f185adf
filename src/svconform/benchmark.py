"""Compile-latency benchmarking, independent of pass/fail semantics.

A compile that returns a structured result counts as a successful
invocation whether or not the source was accepted; only exceptions (and
unreadable files) count as failed runs and are left out of the timing.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from svconform.adapters.base import count_lines
from svconform.fixtures.metadata import read_fixture

if TYPE_CHECKING:
    from collections.abc import Iterable

    from svconform.adapters.adapter import CompilerAdapter

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 100
BENCHMARK_MAX_FILE_BYTES = 10 * 1024 * 1024

_NS_PER_SECOND = 1_000_000_000
_NS_PER_MS = 1_000_000


@dataclass
class BenchmarkResult:
    """Aggregate timing of a benchmark invocation."""

    total_iterations: int
    successful_runs: int
    failed_runs: int
    total_time_ns: int
    average_time_ns: int
    lines_of_code: int

    @property
    def success_rate(self) -> float:
        """Percentage of iterations that produced a result."""
        if self.total_iterations == 0:
            return 0.0
        return self.successful_runs * 100.0 / self.total_iterations

    @property
    def total_time_ms(self) -> float:
        """Total timed compile time in milliseconds."""
        return self.total_time_ns / _NS_PER_MS

    @property
    def average_time_ms(self) -> float:
        """Average time per successful compile in milliseconds."""
        return self.average_time_ns / _NS_PER_MS

    @property
    def lines_per_second(self) -> float:
        """Lines of code divided by the average compile time."""
        if self.average_time_ns <= 0:
            return 0.0
        return self.lines_of_code / (self.average_time_ns / _NS_PER_SECOND)


class Benchmark:
    """Measure raw compile latency through an adapter."""

    def __init__(self, adapter: CompilerAdapter) -> None:
        self.adapter = adapter

    def _timed_compile(self, source: str) -> int | None:
        """Compile *source* once; return elapsed ns, or ``None`` if it raised."""
        start = time.perf_counter_ns()
        try:
            self.adapter.compile(source)
        except Exception as exc:
            logger.debug("Benchmark compile raised %s: %s", type(exc).__name__, exc)
            return None
        return time.perf_counter_ns() - start

    def run_single(self, source: str, iterations: int = DEFAULT_ITERATIONS) -> BenchmarkResult:
        """Compile the same *source* *iterations* times."""
        if iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {iterations}")

        total_time = 0
        successful = 0
        failed = 0
        for _ in range(iterations):
            elapsed = self._timed_compile(source)
            if elapsed is None:
                failed += 1
                continue
            total_time += elapsed
            successful += 1

        return BenchmarkResult(
            total_iterations=iterations,
            successful_runs=successful,
            failed_runs=failed,
            total_time_ns=total_time,
            average_time_ns=total_time // successful if successful else 0,
            lines_of_code=count_lines(source),
        )

    def run_files(
        self,
        paths: Iterable[Path | str],
        *,
        max_bytes: int = BENCHMARK_MAX_FILE_BYTES,
    ) -> BenchmarkResult:
        """Compile each file in *paths* once."""
        file_paths = [Path(p) for p in paths]
        total_time = 0
        successful = 0
        failed = 0
        total_lines = 0

        for path in file_paths:
            try:
                source = read_fixture(path, max_bytes)
            except OSError as exc:
                logger.warning("Benchmark skipping %s: %s", path, exc)
                failed += 1
                continue

            elapsed = self._timed_compile(source)
            if elapsed is None:
                failed += 1
                continue
            total_time += elapsed
            successful += 1
            total_lines += count_lines(source)

        return BenchmarkResult(
            total_iterations=len(file_paths),
            successful_runs=successful,
            failed_runs=failed,
            total_time_ns=total_time,
            average_time_ns=total_time // successful if successful else 0,
            lines_of_code=total_lines,
        )
