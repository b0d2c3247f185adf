"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from svconform.runner import Outcome

if TYPE_CHECKING:
    from collections.abc import Iterable

    from svconform.adapters.base import CompilerInfo
    from svconform.benchmark import BenchmarkResult
    from svconform.fixtures.loader import TestCase
    from svconform.runner import CaseResult, RunReport, TagRunReport

console = Console()


_PERFECT_RATE = 100.0
_GOOD_RATE = 80.0
_SECONDS_PER_MINUTE = 60.0
_MS_PER_SECOND = 1000.0

_MAX_MESSAGE_LENGTH = 80
_MAX_FAILURES_DISPLAY = 50

_OUTCOME_STYLE = {
    Outcome.PASS: ("green", "✓"),
    Outcome.FAIL: ("red", "✗"),
    Outcome.SKIP: ("yellow", "⊘"),
    Outcome.ERROR_COMPILE: ("magenta", "⚠"),
    Outcome.ERROR_RUNTIME: ("magenta", "⚠"),
}


def _pass_rate_color(rate: float) -> str:
    """Return a Rich color name for a given pass-rate percentage."""
    if rate >= _PERFECT_RATE:
        return "green"
    if rate >= _GOOD_RATE:
        return "yellow"
    return "red"


def _format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string."""
    if seconds >= _SECONDS_PER_MINUTE:
        return f"{seconds / _SECONDS_PER_MINUTE:.1f}m"
    if seconds < 1:
        return f"{seconds * _MS_PER_SECOND:.0f}ms"
    return f"{seconds:.1f}s"


def _truncate(text: str, limit: int = _MAX_MESSAGE_LENGTH) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


class CLIReporter:
    """Rich terminal output for conformance runs and benchmarks."""

    def __init__(self, output: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = output or console
        self.verbose = False

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{escape(title)}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def print_run_header(self, info: CompilerInfo, case_count: int) -> None:
        """Print a banner naming the backend under test."""
        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]{escape(info.name)}[/bold white] [dim]{escape(info.version)}[/dim]\n"
                f"{case_count} SystemVerilog compliance tests",
                border_style="cyan",
                padding=(0, 2),
            )
        )

    # ── Per-case progress ──────────────────────────────────────────────

    def case_finished(self, case: TestCase, result: CaseResult) -> None:
        """Print one line per non-passing case; passes only when verbose."""
        if result.outcome is Outcome.PASS and not self.verbose:
            return
        color, icon = _OUTCOME_STYLE[result.outcome]
        label = result.outcome.value.upper()
        detail = result.message or case.description
        line = f"  [{color}]{icon} {label}[/{color}] {escape(case.name)}"
        if detail:
            line += f" [dim]- {escape(_truncate(detail))}[/dim]"
        self.console.print(line)

    # ── Summaries ──────────────────────────────────────────────────────

    def print_test_summary_bar(
        self,
        passed: int,
        failed: int,
        skipped: int,
        errors: int,
        duration_ms: float,
    ) -> None:
        """Print a visual bar showing test result distribution with stats."""
        total = passed + failed + skipped + errors
        if total == 0:
            self.console.print("  [dim]No tests executed[/dim]")
            return

        pass_rate = passed / total * 100
        bar = self._build_result_bar(passed, failed, skipped, errors)
        dur_str = _format_duration(duration_ms / _MS_PER_SECOND)
        rate_color = _pass_rate_color(pass_rate)

        self.console.print()
        self.console.print(
            f"  [bold]{total}[/bold] tests  {bar}  "
            f"[bold {rate_color}]{pass_rate:.0f}%[/bold {rate_color}] pass rate  "
            f"[dim]⏱ {dur_str}[/dim]"
        )

        parts: list[str] = []
        if passed:
            parts.append(f"[green]✓ {passed} passed[/green]")
        if failed:
            parts.append(f"[red]✗ {failed} failed[/red]")
        if skipped:
            parts.append(f"[yellow]⊘ {skipped} skipped[/yellow]")
        if errors:
            parts.append(f"[magenta]⚠ {errors} errors[/magenta]")

        self.console.print(f"  {'  '.join(parts)}")
        self.console.print()

    def _build_result_bar(
        self,
        passed: int,
        failed: int,
        skipped: int,
        errors: int,
        width: int = 40,
    ) -> str:
        """Build a colored bar string proportional to result counts."""
        total = passed + failed + skipped + errors
        if total == 0:
            return f"[dim]{'░' * width}[/dim]"

        cells: list[str] = []
        for count, color in ((passed, "green"), (failed, "red"), (skipped, "yellow"), (errors, "magenta")):
            cells.extend([color] * round(count / total * width))
        cells = cells[:width]
        cells.extend(["dim"] * (width - len(cells)))

        # One markup span per run of equal colors.
        result = ""
        start = 0
        for index in range(1, width + 1):
            if index == width or cells[index] != cells[start]:
                color = cells[start]
                char = "░" if color == "dim" else "█"
                result += f"[{color}]{char * (index - start)}[/{color}]"
                start = index
        return result

    def print_performance(self, report: RunReport) -> None:
        """Print wall-clock and per-case timing for a run."""
        table = Table(title="Performance", title_style="bold cyan", show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Total execution time", f"{report.total_duration_ms:.2f} ms")
        table.add_row("Total compilation time", f"{report.compile_duration_ms:.2f} ms")
        table.add_row("Average per test", f"{report.average_ms:.2f} ms")
        table.add_row("Tests per second", f"{report.tests_per_second:.0f}")
        self.console.print(table)

    def print_failures(self, report: RunReport) -> None:
        """Print a table of failed and errored cases."""
        failures = report.failures()
        if not failures:
            return

        table = Table(title=f"Failures ({len(failures)})", title_style="bold red")
        table.add_column("Test", style="bold")
        table.add_column("Outcome", justify="center")
        table.add_column("Message")

        for result in failures[:_MAX_FAILURES_DISPLAY]:
            color, icon = _OUTCOME_STYLE[result.outcome]
            table.add_row(
                escape(result.name),
                f"[{color}]{icon} {result.outcome.value}[/{color}]",
                escape(_truncate(result.message)),
            )
        self.console.print(table)
        if len(failures) > _MAX_FAILURES_DISPLAY:
            self.print_info(f"... and {len(failures) - _MAX_FAILURES_DISPLAY} more")

    def print_run_report(self, report: RunReport) -> None:
        """Print the full end-of-run summary."""
        self.print_failures(report)
        self.print_performance(report)
        self.print_test_summary_bar(
            report.passed,
            report.failed,
            report.skipped,
            report.errors,
            report.total_duration_ms,
        )
        if report.success:
            self.print_success("All compliance tests passed")
        else:
            self.print_error(f"{report.failed} failed, {report.errors} errors")

    def print_tag_report(self, report: TagRunReport) -> None:
        """Print the outcome of a tag-filtered run."""
        if report.matched == 0:
            self.print_warning(f"No tests found with tag: {report.tag}")
            return
        color = _pass_rate_color(report.passed / report.matched * 100)
        self.console.print(
            f"\nTag [bold]{escape(report.tag)}[/bold] results: "
            f"[{color}]{report.passed}/{report.matched} passed[/{color}]"
        )

    def print_chapter_statistics(self, stats: dict[str, int]) -> None:
        """Print the number of loaded cases per chapter."""
        if not stats:
            self.print_info("No chapter fixtures loaded")
            return

        table = Table(title="Chapter Statistics", title_style="bold cyan")
        table.add_column("Chapter", style="bold")
        table.add_column("Tests", justify="right")
        for chapter, count in stats.items():
            table.add_row(escape(chapter), str(count))
        table.add_section()
        table.add_row("[bold]Total[/bold]", f"[bold]{sum(stats.values())}[/bold]")
        self.console.print(table)

    def print_benchmark(self, label: str, result: BenchmarkResult) -> None:
        """Print benchmark timings."""
        table = Table(title=f"Benchmark: {escape(label)}", title_style="bold cyan", show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")

        rate_color = _pass_rate_color(result.success_rate)
        table.add_row("Iterations", str(result.total_iterations))
        table.add_row(
            "Successful runs",
            f"{result.successful_runs} [{rate_color}]({result.success_rate:.1f}%)[/{rate_color}]",
        )
        table.add_row("Failed runs", str(result.failed_runs))
        table.add_row("Total time", f"{result.total_time_ms:.2f} ms")
        table.add_row("Average time", f"{result.average_time_ms:.3f} ms")
        table.add_row("Lines of code", str(result.lines_of_code))
        table.add_row("Lines per second", f"{result.lines_per_second:,.0f}")
        self.console.print(table)

    def print_backends(self, backends: Iterable[tuple[str, CompilerInfo | None]]) -> None:
        """Print the registered backends and what they report about themselves."""
        table = Table(title="Backends", title_style="bold cyan")
        table.add_column("Name", style="bold")
        table.add_column("Compiler")
        table.add_column("Version")
        table.add_column("Standards")

        for name, info in backends:
            if info is None:
                table.add_row(escape(name), "[red]unavailable[/red]", "-", "-")
                continue
            standards = ", ".join(version.value for version in info.standard_support) or "-"
            table.add_row(escape(name), escape(info.name), escape(info.version), standards)
        self.console.print(table)


reporter = CLIReporter()
