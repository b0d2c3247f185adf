"""JSON reporter: machine-readable conformance reports.

Serializes a run (or a benchmark) together with the backend description so
results from different compilers can be compared by downstream tooling.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from svconform import __version__

if TYPE_CHECKING:
    from pathlib import Path

    from svconform.adapters.base import CompilerInfo
    from svconform.benchmark import BenchmarkResult
    from svconform.runner import RunReport

logger = logging.getLogger(__name__)


class JSONReporter:
    """Generate structured JSON reports from run and benchmark results."""

    def generate(
        self,
        output_path: Path,
        *,
        run_report: RunReport | None = None,
        compiler: CompilerInfo | None = None,
        benchmarks: dict[str, BenchmarkResult] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Path:
        """Write a JSON report file and return its path."""
        report = build_report(
            run_report=run_report, compiler=compiler, benchmarks=benchmarks, extra=extra
        )
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(report, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        logger.info("JSON report written to %s", output_path)
        return output_path

    def generate_string(
        self,
        *,
        run_report: RunReport | None = None,
        compiler: CompilerInfo | None = None,
        benchmarks: dict[str, BenchmarkResult] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> str:
        """Return the JSON report as a string."""
        report = build_report(
            run_report=run_report, compiler=compiler, benchmarks=benchmarks, extra=extra
        )
        return json.dumps(report, indent=2, ensure_ascii=False, default=str)


def build_report(
    *,
    run_report: RunReport | None = None,
    compiler: CompilerInfo | None = None,
    benchmarks: dict[str, BenchmarkResult] | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the JSON report structure."""
    report: dict[str, Any] = {
        "tool": "svconform",
        "version": __version__,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    }

    if compiler is not None:
        report["compiler"] = {
            "name": compiler.name,
            "version": compiler.version,
            "standard_support": [version.value for version in compiler.standard_support],
            "features": list(compiler.features),
        }

    if run_report is not None:
        report["results"] = _serialize_run_report(run_report)

    if benchmarks:
        report["benchmarks"] = {
            label: _serialize_benchmark(result) for label, result in benchmarks.items()
        }

    if extra:
        report.update(extra)

    return report


def _serialize_run_report(report: RunReport) -> dict[str, Any]:
    return {
        "summary": {
            "total": report.total,
            "passed": report.passed,
            "failed": report.failed,
            "skipped": report.skipped,
            "errors": report.errors,
            "pass_rate": round(report.pass_rate, 2),
            "total_duration_ms": report.total_duration_ms,
            "compile_duration_ms": report.compile_duration_ms,
            "average_ms": report.average_ms,
            "tests_per_second": report.tests_per_second,
            "success": report.success,
        },
        "test_cases": [
            {
                "name": case.name,
                "outcome": case.outcome.value,
                "duration_ms": case.duration_ms,
                "message": case.message,
                "file_path": case.file_path,
            }
            for case in report.cases
        ],
    }


def _serialize_benchmark(result: BenchmarkResult) -> dict[str, Any]:
    return {
        "total_iterations": result.total_iterations,
        "successful_runs": result.successful_runs,
        "failed_runs": result.failed_runs,
        "success_rate": result.success_rate,
        "total_time_ns": result.total_time_ns,
        "average_time_ns": result.average_time_ns,
        "lines_of_code": result.lines_of_code,
        "lines_per_second": result.lines_per_second,
    }
