"""Command backend: drive an external SystemVerilog tool as a compiler.

The source is written to a temporary ``.sv`` file and the configured argv is
run with ``{file}`` replaced by that path.  Exit status 0 means the source
was accepted; otherwise diagnostics are scraped from the tool's output.
Crashes, missing executables and timeouts are host failures.
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING

from svconform.adapters.base import (
    CompileError,
    CompileMetrics,
    CompileResult,
    CompilerInfo,
    CompileWarning,
    ErrorCategory,
    HostFailure,
    SVCompiler,
    count_lines,
)
from svconform.utils.subprocess_runner import run_subprocess

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

FILE_PLACEHOLDER = "{file}"
DEFAULT_ARGV = ("verilator", "--lint-only", "-Wno-fatal", FILE_PLACEHOLDER)
DEFAULT_TIMEOUT = 60.0

# Covers verilator ("%Error: f.sv:3:5: msg"), slang ("f.sv:3:5: error: msg")
# and iverilog ("f.sv:3: syntax error").
_DIAGNOSTIC_RE = re.compile(
    r"^(?:%(?P<tool_severity>Error|Warning)[^:]*:\s*)?"
    r"(?P<file>[^:\s][^:]*):(?P<line>\d+):(?:(?P<column>\d+):)?\s*"
    r"(?:(?P<severity>fatal|error|warning)\s*:\s*)?"
    r"(?P<message>.*)$",
    re.IGNORECASE,
)


def parse_diagnostics(
    output: str, source_path: str | None = None
) -> tuple[list[CompileError], list[CompileWarning]]:
    """Extract errors and warnings from tool *output*.

    References to *source_path* (the temporary file) are reported without a
    file name.
    """
    errors: list[CompileError] = []
    warnings: list[CompileWarning] = []
    for raw_line in output.splitlines():
        match = _DIAGNOSTIC_RE.match(raw_line.strip())
        if match is None:
            continue
        file = match.group("file")
        if source_path is not None and Path(file).name == Path(source_path).name:
            file = None
        line = int(match.group("line"))
        column = int(match.group("column") or 0)
        message = match.group("message").strip()
        severity = (match.group("tool_severity") or match.group("severity") or "error").lower()
        if severity == "warning":
            warnings.append(CompileWarning(message=message, line=line, column=column, file=file))
        else:
            errors.append(
                CompileError(
                    message=message,
                    line=line,
                    column=column,
                    file=file,
                    category=ErrorCategory.OTHER,
                )
            )
    return errors, warnings


class CommandCompiler(SVCompiler):
    """Run an external tool per compile."""

    def __init__(
        self,
        argv: Sequence[str] = DEFAULT_ARGV,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        env: dict[str, str] | None = None,
    ) -> None:
        if not argv:
            raise ValueError("argv cannot be empty")
        self.argv = [str(arg) for arg in argv]
        self.timeout = timeout
        self.env = env
        self._workdir: Path | None = None

    @property
    def name(self) -> str:
        return "command"

    def describe(self) -> CompilerInfo:
        return CompilerInfo(name=f"command:{Path(self.argv[0]).name}", version="external")

    def initialize(self) -> None:
        if shutil.which(self.argv[0]) is None:
            logger.warning("Executable %s not found on PATH", self.argv[0])
        self._workdir = Path(tempfile.mkdtemp(prefix="svconform-"))

    def shutdown(self) -> None:
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None

    def compile_advanced(self, source: str) -> CompileResult:
        if self._workdir is None:
            self.initialize()
        workdir = self._workdir or Path(tempfile.gettempdir())

        source_path = workdir / "fixture.sv"
        source_path.write_text(source, encoding="utf-8")
        command = [arg.replace(FILE_PLACEHOLDER, str(source_path)) for arg in self.argv]

        start = time.perf_counter_ns()
        try:
            outcome = run_subprocess(command, cwd=workdir, timeout=self.timeout, env=self.env)
        except FileNotFoundError as exc:
            raise HostFailure(f"Compiler executable not found: {command[0]}") from exc
        elapsed = time.perf_counter_ns() - start

        if outcome.timed_out:
            raise HostFailure(f"{command[0]} timed out after {self.timeout}s")
        if outcome.returncode < 0:
            raise HostFailure(f"{command[0]} was killed by signal {-outcome.returncode}")

        errors, warnings = parse_diagnostics(
            f"{outcome.stderr}\n{outcome.stdout}", str(source_path)
        )
        result = CompileResult(
            warnings=warnings,
            metrics=CompileMetrics(compile_time_ns=elapsed, lines_processed=count_lines(source)),
        )
        if outcome.success:
            return result

        for error in errors:
            result.add_error(error)
        if not errors:
            detail = (outcome.stderr or outcome.stdout).strip().splitlines()
            result.add_error(
                CompileError(
                    message=detail[-1] if detail else f"exit status {outcome.returncode}",
                    category=ErrorCategory.OTHER,
                )
            )
        return result
