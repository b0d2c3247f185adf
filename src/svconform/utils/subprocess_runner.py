"""Subprocess runner with timeout and output capture for external compilers."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass
class SubprocessResult:
    """Result of subprocess execution."""

    returncode: int
    """Exit code of the process."""

    stdout: str
    """Standard output captured from the process."""

    stderr: str
    """Standard error captured from the process."""

    success: bool
    """True if returncode is 0."""

    timed_out: bool = False
    """True if the process was terminated due to timeout."""

    duration_ms: float = 0.0
    """Actual duration of execution in milliseconds."""


def run_subprocess(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float = 60.0,
    env: dict[str, str] | None = None,
) -> SubprocessResult:
    """Execute a command synchronously with a timeout.

    Args:
        command: Command and arguments (e.g. ``['verilator', '--lint-only', 'top.sv']``).
        cwd: Working directory for the subprocess. Defaults to current directory.
        timeout: Maximum seconds to wait for completion.
        env: Extra environment variables, merged over the current environment.

    Returns:
        SubprocessResult with exit code, output, and timing.

    Raises:
        ValueError: If command is empty, timeout is not positive, or *cwd*
            does not exist.
        FileNotFoundError: If the executable cannot be found.
    """
    if not command:
        raise ValueError("Command cannot be empty")

    if timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout}")

    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.exists():
        raise ValueError(f"Working directory does not exist: {work_dir}")

    full_env = {**os.environ, **env} if env else None

    logger.debug(
        "Running subprocess: %s (cwd=%s, timeout=%s)",
        " ".join(str(c) for c in command),
        work_dir,
        timeout,
    )

    start_time = time.perf_counter()
    try:
        completed = subprocess.run(
            list(command),
            capture_output=True,
            cwd=work_dir,
            env=full_env,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        logger.warning("Subprocess timed out after %s seconds", timeout)
        return SubprocessResult(
            returncode=-1,
            stdout=_decode(exc.stdout),
            stderr=_decode(exc.stderr) or "Process timed out and was killed",
            success=False,
            timed_out=True,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    duration_ms = (time.perf_counter() - start_time) * 1000
    result = SubprocessResult(
        returncode=completed.returncode,
        stdout=_decode(completed.stdout),
        stderr=_decode(completed.stderr),
        success=completed.returncode == 0,
        duration_ms=duration_ms,
    )
    logger.debug(
        "Subprocess finished: returncode=%s, duration=%.2fms",
        result.returncode,
        duration_ms,
    )
    return result


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")
