"""Tests for compile-latency benchmarking."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from svconform.adapters.adapter import CompilerAdapter
from svconform.adapters.base import CompileError, CompileResult, HostFailure
from svconform.benchmark import Benchmark, BenchmarkResult

if TYPE_CHECKING:
    from pathlib import Path


class Accepts:
    def __init__(self) -> None:
        self.calls = 0

    def compile_advanced(self, source: str) -> CompileResult:
        self.calls += 1
        return CompileResult()


class Rejects:
    def compile_advanced(self, source: str) -> CompileResult:
        result = CompileResult()
        result.add_error(CompileError("nope"))
        return result


class CrashesOnMarker:
    def compile_advanced(self, source: str) -> CompileResult:
        if "crash" in source:
            raise HostFailure("boom")
        return CompileResult()


class TestRunSingle:
    def test_iterations_counted(self) -> None:
        compiler = Accepts()
        result = Benchmark(CompilerAdapter(compiler)).run_single("a\nb\nc", iterations=5)
        assert compiler.calls == 5
        assert result.total_iterations == 5
        assert result.successful_runs == 5
        assert result.failed_runs == 0
        assert result.lines_of_code == 3
        assert result.average_time_ns == result.total_time_ns // 5

    def test_rejected_source_still_counts_as_successful_run(self) -> None:
        result = Benchmark(CompilerAdapter(Rejects())).run_single("x", iterations=3)
        assert result.successful_runs == 3
        assert result.success_rate == 100.0

    def test_exceptions_count_as_failed_runs(self) -> None:
        result = Benchmark(CompilerAdapter(CrashesOnMarker())).run_single("crash", iterations=4)
        assert result.successful_runs == 0
        assert result.failed_runs == 4
        assert result.total_time_ns == 0
        assert result.average_time_ns == 0
        assert result.lines_per_second == 0.0

    def test_zero_iterations(self) -> None:
        result = Benchmark(CompilerAdapter(Accepts())).run_single("x", iterations=0)
        assert result.total_iterations == 0
        assert result.success_rate == 0.0
        assert result.average_time_ns == 0

    def test_negative_iterations_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            Benchmark(CompilerAdapter(Accepts())).run_single("x", iterations=-1)


class TestRunFiles:
    def test_each_file_compiled_once(self, tmp_path: Path) -> None:
        first = tmp_path / "a.sv"
        second = tmp_path / "b.sv"
        first.write_text("one\ntwo", encoding="utf-8")
        second.write_text("three", encoding="utf-8")
        compiler = Accepts()

        result = Benchmark(CompilerAdapter(compiler)).run_files([first, second])

        assert compiler.calls == 2
        assert result.total_iterations == 2
        assert result.successful_runs == 2
        assert result.lines_of_code == 3

    def test_unreadable_file_counts_as_failure(self, tmp_path: Path) -> None:
        present = tmp_path / "a.sv"
        present.write_text("x", encoding="utf-8")

        result = Benchmark(CompilerAdapter(Accepts())).run_files([present, tmp_path / "gone.sv"])

        assert result.successful_runs == 1
        assert result.failed_runs == 1
        assert result.lines_of_code == 1

    def test_crashing_file_excluded_from_lines(self, tmp_path: Path) -> None:
        good = tmp_path / "good.sv"
        bad = tmp_path / "bad.sv"
        good.write_text("a\nb", encoding="utf-8")
        bad.write_text("crash\n\n\n", encoding="utf-8")

        result = Benchmark(CompilerAdapter(CrashesOnMarker())).run_files([good, bad])

        assert result.failed_runs == 1
        assert result.lines_of_code == 2

    def test_size_limit(self, tmp_path: Path) -> None:
        big = tmp_path / "big.sv"
        big.write_text("x" * 100, encoding="utf-8")
        result = Benchmark(CompilerAdapter(Accepts())).run_files([big], max_bytes=10)
        assert result.failed_runs == 1

    def test_no_files(self) -> None:
        result = Benchmark(CompilerAdapter(Accepts())).run_files([])
        assert result.total_iterations == 0
        assert result.success_rate == 0.0


class TestBenchmarkResult:
    def test_derived_values(self) -> None:
        result = BenchmarkResult(
            total_iterations=4,
            successful_runs=3,
            failed_runs=1,
            total_time_ns=6_000_000,
            average_time_ns=2_000_000,
            lines_of_code=100,
        )
        assert result.success_rate == 75.0
        assert result.total_time_ms == 6.0
        assert result.average_time_ms == 2.0
        assert result.lines_per_second == pytest.approx(50_000.0)
