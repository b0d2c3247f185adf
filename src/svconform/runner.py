"""Conformance test runner: execute fixtures against a compiler and aggregate outcomes.

Every case gets a fresh compiler instance wrapped in a fresh adapter, and
that instance is shut down before the next case starts.  Cases run strictly
one after another.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from svconform.adapters.adapter import CompilerAdapter
from svconform.adapters.base import AdapterConstructionError
from svconform.fixtures.loader import chapter_dir
from svconform.fixtures.metadata import DEFAULT_MAX_FIXTURE_BYTES, read_fixture

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from svconform.adapters.base import CompileResult
    from svconform.fixtures.loader import TestCase, TestRegistry

logger = logging.getLogger(__name__)

_MS_PER_SECOND = 1000.0


class Outcome(Enum):
    """Classification of one test case run."""

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    ERROR_COMPILE = "error_compile"
    ERROR_RUNTIME = "error_runtime"

    @property
    def is_error(self) -> bool:
        """``True`` for the two error outcomes."""
        return self in {Outcome.ERROR_COMPILE, Outcome.ERROR_RUNTIME}


@dataclass
class CaseResult:
    """Result of running a single test case."""

    name: str
    outcome: Outcome
    duration_ms: float = 0.0
    message: str = ""
    file_path: str = ""


@dataclass
class RunReport:
    """Aggregated result of a run over the registry."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    cases: list[CaseResult] = field(default_factory=list)
    total_duration_ms: float = 0.0
    """Wall-clock time of the whole run."""

    compile_duration_ms: float = 0.0
    """Sum of per-case times."""

    def record(self, result: CaseResult) -> None:
        """Fold *result* into the counters."""
        self.cases.append(result)
        self.compile_duration_ms += result.duration_ms
        if result.outcome is Outcome.PASS:
            self.passed += 1
        elif result.outcome is Outcome.FAIL:
            self.failed += 1
        elif result.outcome is Outcome.SKIP:
            self.skipped += 1
        else:
            self.errors += 1

    @property
    def total(self) -> int:
        """Total number of cases run."""
        return self.passed + self.failed + self.skipped + self.errors

    @property
    def average_ms(self) -> float:
        """Average per-case time in milliseconds."""
        return self.compile_duration_ms / self.total if self.total else 0.0

    @property
    def tests_per_second(self) -> float:
        """Throughput over the wall-clock duration."""
        if self.total_duration_ms <= 0:
            return 0.0
        return self.total / (self.total_duration_ms / _MS_PER_SECOND)

    @property
    def pass_rate(self) -> float:
        """Percentage of cases that passed."""
        return self.passed / self.total * 100 if self.total else 0.0

    @property
    def success(self) -> bool:
        """``True`` when no case failed or errored."""
        return self.failed + self.errors == 0

    @property
    def exit_code(self) -> int:
        """Process exit status for this run."""
        return 0 if self.success else 1

    def failures(self) -> list[CaseResult]:
        """Cases that failed or errored."""
        return [c for c in self.cases if c.outcome is Outcome.FAIL or c.outcome.is_error]


@dataclass
class TagRunReport:
    """Result of a tag-filtered run."""

    tag: str
    matched: int = 0
    passed: int = 0
    failed: int = 0
    cases: list[CaseResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """``True`` when every matched case passed or was skipped."""
        return all(c.outcome in {Outcome.PASS, Outcome.SKIP} for c in self.cases)


class RunObserver(Protocol):
    """Receives progress notifications from the runner."""

    def case_finished(self, case: TestCase, result: CaseResult) -> None:
        """Called after each case has been classified."""


class TestRunner:
    """Drive registry cases through a compiler and classify the outcomes."""

    __test__ = False

    def __init__(
        self,
        registry: TestRegistry,
        compiler_factory: Callable[[], object],
        *,
        observer: RunObserver | None = None,
        skip_tags: Iterable[str] = (),
        max_fixture_bytes: int = DEFAULT_MAX_FIXTURE_BYTES,
        fixtures_root: Path | str | None = None,
    ) -> None:
        """Create a runner and check that the factory's compilers can be adapted.

        Raises:
            AdapterConstructionError: If the factory builds compilers with no
                compatible compile operation.  Nothing has run at this point.
        """
        self.registry = registry
        self.compiler_factory = compiler_factory
        self.observer = observer
        self.skip_tags = frozenset(skip_tags)
        self.max_fixture_bytes = max_fixture_bytes
        self.fixtures_root = Path(fixtures_root) if fixtures_root is not None else None

        probe = CompilerAdapter(compiler_factory())
        try:
            self.compiler_info = probe.describe()
        finally:
            self._shutdown(probe, "backend check")
        logger.debug("Runner using %s %s", self.compiler_info.name, self.compiler_info.version)

    # ── Single case ──────────────────────────────────────────────────

    def run_case(self, case: TestCase) -> CaseResult:
        """Run one case to a terminal outcome."""
        start = time.perf_counter()
        outcome, message = self._execute(case)
        duration_ms = (time.perf_counter() - start) * _MS_PER_SECOND

        result = CaseResult(
            name=case.name,
            outcome=outcome,
            duration_ms=duration_ms,
            message=message,
            file_path=str(case.file_path),
        )
        if outcome is Outcome.PASS:
            logger.debug("PASS: %s", case.name)
        else:
            logger.info("%s: %s - %s", outcome.value.upper(), case.name, message)

        if self.observer is not None:
            self.observer.case_finished(case, result)
        return result

    def _execute(self, case: TestCase) -> tuple[Outcome, str]:
        skipped_by = sorted(self.skip_tags.intersection(case.tags))
        if skipped_by:
            return Outcome.SKIP, f"skipped by tag {', '.join(skipped_by)}"

        try:
            source = read_fixture(case.file_path, self.max_fixture_bytes)
        except OSError as exc:
            logger.error("Failed to read test file %s: %s", case.file_path, exc)
            return Outcome.ERROR_COMPILE, str(exc)

        try:
            adapter = CompilerAdapter(self.compiler_factory())
        except AdapterConstructionError:
            raise
        except Exception as exc:
            logger.error("Compiler construction failed for %s: %s", case.name, exc)
            return Outcome.ERROR_RUNTIME, f"compiler construction failed: {exc}"

        try:
            try:
                adapter.initialize()
            except Exception as exc:
                logger.error("Compiler initialization failed for %s: %s", case.name, exc)
                return Outcome.ERROR_RUNTIME, f"initialization failed: {exc}"

            try:
                compile_result = adapter.compile(source)
            except Exception as exc:
                if case.should_fail:
                    return Outcome.PASS, f"rejected with {type(exc).__name__}: {exc}"
                logger.error("Compile failed for %s: %s", case.name, exc)
                return Outcome.FAIL, f"compile raised {type(exc).__name__}: {exc}"

            return self._classify(case, compile_result)
        finally:
            self._shutdown(adapter, case.name)

    @staticmethod
    def _classify(case: TestCase, result: CompileResult) -> tuple[Outcome, str]:
        if not result.success:
            if case.should_fail:
                return Outcome.PASS, case.should_fail_reason or ""
            first = str(result.errors[0]) if result.errors else "compilation failed"
            return Outcome.FAIL, first

        if case.should_fail:
            return Outcome.FAIL, f"Test {case.name} should have failed but passed"
        return Outcome.PASS, ""

    @staticmethod
    def _shutdown(adapter: CompilerAdapter, label: str) -> None:
        try:
            adapter.shutdown()
        except Exception as exc:
            logger.warning("Compiler shutdown failed after %s: %s", label, exc)

    # ── Whole-registry runs ──────────────────────────────────────────

    def run_all(self) -> RunReport:
        """Run every case in registry order."""
        report = RunReport()
        logger.info("Running %d SystemVerilog compliance tests", len(self.registry))

        start = time.perf_counter()
        for case in self.registry:
            report.record(self.run_case(case))
        report.total_duration_ms = (time.perf_counter() - start) * _MS_PER_SECOND

        logger.info(
            "Finished: %d passed, %d failed, %d skipped, %d errors",
            report.passed,
            report.failed,
            report.skipped,
            report.errors,
        )
        return report

    def run_by_tag(self, tag: str) -> TagRunReport:
        """Run only the cases tagged *tag*; no match is not an error."""
        report = TagRunReport(tag=tag)
        for case in self.registry:
            if not case.has_tag(tag):
                continue
            result = self.run_case(case)
            report.cases.append(result)
            report.matched += 1
            if result.outcome is Outcome.PASS:
                report.passed += 1
            elif result.outcome is Outcome.FAIL:
                report.failed += 1

        if report.matched == 0:
            logger.info("No tests found with tag: %s", tag)
        else:
            logger.info("Tag %s results: %d/%d passed", tag, report.passed, report.matched)
        return report

    def run_by_chapter(self, chapter: str) -> RunReport:
        """Reload the registry with one chapter only, then run it.

        This replaces the registry contents, so it must not overlap another
        run on the same registry.
        """
        if self.fixtures_root is None:
            raise ValueError("run_by_chapter requires fixtures_root")
        self.registry.reload_scoped(chapter_dir(self.fixtures_root, chapter))
        return self.run_all()

    def chapter_statistics(self) -> dict[str, int]:
        """Count registry cases per chapter."""
        return self.registry.chapter_statistics()
