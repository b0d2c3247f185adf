"""Tests for the terminal (Rich) reporter."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from svconform.adapters.base import CompilerInfo, StandardVersion
from svconform.benchmark import BenchmarkResult
from svconform.fixtures.loader import TestCase
from svconform.reporters.terminal import (
    CLIReporter,
    _format_duration,
    _pass_rate_color,
    reporter,
)
from svconform.runner import CaseResult, Outcome, RunReport, TagRunReport

# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def cli_reporter(buffer: io.StringIO) -> CLIReporter:
    """Return a CLIReporter writing plain text into *buffer*."""
    return CLIReporter(Console(file=buffer, width=200, color_system=None, highlight=False))


def _case(name: str = "module_decl") -> TestCase:
    return TestCase(name=name, file_path=Path(f"chapter-23/{name}.sv"), description="a module")


def _report() -> RunReport:
    report = RunReport(total_duration_ms=250.0)
    report.record(CaseResult(name="ok", outcome=Outcome.PASS, duration_ms=1.0))
    report.record(CaseResult(name="bad", outcome=Outcome.FAIL, message="3:1: syntax: [oops]"))
    report.record(CaseResult(name="gone", outcome=Outcome.ERROR_COMPILE, message="unreadable"))
    return report


# ── Helper function tests ───────────────────────────────────────


class TestPassRateColor:
    def test_perfect(self) -> None:
        assert _pass_rate_color(100.0) == "green"

    def test_good(self) -> None:
        assert _pass_rate_color(85.0) == "yellow"

    def test_poor(self) -> None:
        assert _pass_rate_color(10.0) == "red"


class TestFormatDuration:
    def test_milliseconds(self) -> None:
        assert _format_duration(0.25) == "250ms"

    def test_seconds(self) -> None:
        assert _format_duration(12.34) == "12.3s"

    def test_minutes(self) -> None:
        assert _format_duration(90.0) == "1.5m"


# ── Messages ────────────────────────────────────────────────────


class TestMessages:
    def test_basic_messages(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        cli_reporter.print_header("Header")
        cli_reporter.print_success("done")
        cli_reporter.print_error("broken")
        cli_reporter.print_warning("careful")
        cli_reporter.print_info("fyi")
        output = buffer.getvalue()
        for text in ("Header", "✓ done", "✗ broken", "⚠ careful", "fyi"):
            assert text in output

    def test_markup_in_messages_is_escaped(
        self, cli_reporter: CLIReporter, buffer: io.StringIO
    ) -> None:
        cli_reporter.print_error("logic [7:0] bus")
        assert "logic [7:0] bus" in buffer.getvalue()

    def test_module_level_reporter(self) -> None:
        assert isinstance(reporter, CLIReporter)


# ── Per-case progress ───────────────────────────────────────────


class TestCaseFinished:
    def test_pass_hidden_unless_verbose(
        self, cli_reporter: CLIReporter, buffer: io.StringIO
    ) -> None:
        cli_reporter.case_finished(_case(), CaseResult(name="module_decl", outcome=Outcome.PASS))
        assert buffer.getvalue() == ""

        cli_reporter.verbose = True
        cli_reporter.case_finished(_case(), CaseResult(name="module_decl", outcome=Outcome.PASS))
        assert "PASS module_decl" in buffer.getvalue()

    def test_failure_line(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        result = CaseResult(name="module_decl", outcome=Outcome.FAIL, message="expected ';'")
        cli_reporter.case_finished(_case(), result)
        assert "FAIL module_decl - expected ';'" in buffer.getvalue()

    def test_falls_back_to_description(
        self, cli_reporter: CLIReporter, buffer: io.StringIO
    ) -> None:
        cli_reporter.case_finished(_case(), CaseResult(name="module_decl", outcome=Outcome.SKIP))
        assert "SKIP module_decl - a module" in buffer.getvalue()


# ── Summaries ───────────────────────────────────────────────────


class TestSummaries:
    def test_summary_bar_empty(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        cli_reporter.print_test_summary_bar(0, 0, 0, 0, 0.0)
        assert "No tests executed" in buffer.getvalue()

    def test_summary_bar_counts(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        cli_reporter.print_test_summary_bar(3, 1, 0, 1, 1500.0)
        output = buffer.getvalue()
        assert "5 tests" in output
        assert "60% pass rate" in output
        assert "3 passed" in output
        assert "1 failed" in output
        assert "1 errors" in output
        assert "skipped" not in output

    def test_result_bar_width(self, cli_reporter: CLIReporter) -> None:
        bar = cli_reporter._build_result_bar(1, 1, 1, 0, width=30)
        plain = bar.replace("[green]", "").replace("[/green]", "")
        plain = plain.replace("[red]", "").replace("[/red]", "")
        plain = plain.replace("[yellow]", "").replace("[/yellow]", "")
        plain = plain.replace("[dim]", "").replace("[/dim]", "")
        assert len(plain) == 30

    def test_run_report(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        cli_reporter.print_run_report(_report())
        output = buffer.getvalue()
        assert "Failures (2)" in output
        assert "[oops]" in output
        assert "Tests per second" in output
        assert "1 failed, 1 errors" in output

    def test_run_report_success(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        report = RunReport()
        report.record(CaseResult(name="ok", outcome=Outcome.PASS))
        cli_reporter.print_run_report(report)
        output = buffer.getvalue()
        assert "All compliance tests passed" in output
        assert "Failures" not in output

    def test_tag_report(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        cli_reporter.print_tag_report(TagRunReport(tag="23.2", matched=2, passed=1, failed=1))
        assert "1/2 passed" in buffer.getvalue()

    def test_tag_report_without_matches(
        self, cli_reporter: CLIReporter, buffer: io.StringIO
    ) -> None:
        cli_reporter.print_tag_report(TagRunReport(tag="nope"))
        assert "No tests found with tag: nope" in buffer.getvalue()

    def test_chapter_statistics(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        cli_reporter.print_chapter_statistics({"5": 3, "23": 4})
        output = buffer.getvalue()
        assert "Chapter Statistics" in output
        assert "Total" in output
        assert "7" in output

    def test_benchmark(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        result = BenchmarkResult(
            total_iterations=4,
            successful_runs=4,
            failed_runs=0,
            total_time_ns=4_000_000,
            average_time_ns=1_000_000,
            lines_of_code=10,
        )
        cli_reporter.print_benchmark("counter", result)
        output = buffer.getvalue()
        assert "Benchmark: counter" in output
        assert "10,000" in output

    def test_backends(self, cli_reporter: CLIReporter, buffer: io.StringIO) -> None:
        info = CompilerInfo(
            name="svconform-reference",
            version="0.1.0",
            standard_support=(StandardVersion.IEEE1800_2017,),
        )
        cli_reporter.print_backends([("reference", info), ("broken", None)])
        output = buffer.getvalue()
        assert "svconform-reference" in output
        assert "ieee1800_2017" in output
        assert "unavailable" in output
