"""Capability-negotiated wrapper that drives any compiler through one interface.

The adapter inspects the wrapped compiler once, at construction time, and
binds the operations it finds:

* ``compile_advanced(source) -> CompileResult`` is passed through unchanged.
* ``compile(source)`` (returns anything on success, raises on rejection) is
  normalized into a ``CompileResult``.
* ``initialize``, ``shutdown`` and ``describe`` are optional.

A compiler exposing neither compile operation cannot be adapted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from svconform.adapters.base import (
    AdapterConstructionError,
    CompileMetrics,
    CompileResult,
    CompilerInfo,
    ErrorCategory,
    HostFailure,
    StandardVersion,
    count_lines,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

logger = logging.getLogger(__name__)

COMPILE_MODE_ADVANCED = "advanced"
COMPILE_MODE_SIMPLE = "simple"

# Exceptions that signal a broken host rather than a rejected fixture.
HOST_FAILURES: tuple[type[BaseException], ...] = (
    MemoryError,
    RecursionError,
    SystemError,
    HostFailure,
)


@dataclass(frozen=True)
class Capabilities:
    """Which operations a compiler exposes, resolved once per adapter."""

    compile_mode: str
    has_initialize: bool = False
    has_shutdown: bool = False
    has_describe: bool = False


def _bound(compiler: object, attr: str) -> Callable[..., Any] | None:
    method = getattr(compiler, attr, None)
    return method if callable(method) else None


def negotiate_capabilities(compiler: object) -> Capabilities:
    """Inspect *compiler* and report which operations it exposes.

    Raises:
        AdapterConstructionError: If neither ``compile_advanced`` nor
            ``compile`` is available.
    """
    if _bound(compiler, "compile_advanced") is not None:
        mode = COMPILE_MODE_ADVANCED
    elif _bound(compiler, "compile") is not None:
        mode = COMPILE_MODE_SIMPLE
    else:
        msg = f"{type(compiler).__name__} exposes no compatible compile operation"
        raise AdapterConstructionError(msg)

    return Capabilities(
        compile_mode=mode,
        has_initialize=_bound(compiler, "initialize") is not None,
        has_shutdown=_bound(compiler, "shutdown") is not None,
        has_describe=_bound(compiler, "describe") is not None,
    )


class CompilerAdapter:
    """Drive an arbitrary compiler object through a fixed capability surface.

    The adapter does not cache results between calls; anything retained
    across compiles is retained by the wrapped compiler itself.
    """

    def __init__(self, compiler: object) -> None:
        """Bind the operations *compiler* supports.

        Raises:
            AdapterConstructionError: If *compiler* has no compile operation.
        """
        self._compiler = compiler
        self.capabilities = negotiate_capabilities(compiler)

        if self.capabilities.compile_mode == COMPILE_MODE_ADVANCED:
            self._compile_impl = self._compile_advanced
        else:
            self._compile_impl = self._compile_simple

        self._initialize_fn = _bound(compiler, "initialize")
        self._shutdown_fn = _bound(compiler, "shutdown")
        self._describe_fn = _bound(compiler, "describe")

        logger.debug(
            "Adapted %s (mode=%s, initialize=%s, shutdown=%s, describe=%s)",
            type(compiler).__name__,
            self.capabilities.compile_mode,
            self.capabilities.has_initialize,
            self.capabilities.has_shutdown,
            self.capabilities.has_describe,
        )

    @property
    def compiler(self) -> object:
        """The wrapped compiler instance."""
        return self._compiler

    def compile(self, source: str) -> CompileResult:
        """Compile *source*.

        Host-level failures propagate to the caller; rejected input is
        reported through the returned ``CompileResult``.
        """
        return self._compile_impl(source)

    def initialize(self) -> None:
        """Initialize the wrapped compiler, if it supports initialization."""
        if self._initialize_fn is not None:
            self._initialize_fn()

    def shutdown(self) -> None:
        """Shut the wrapped compiler down, if it supports shutdown."""
        if self._shutdown_fn is not None:
            self._shutdown_fn()

    def describe(self) -> CompilerInfo:
        """Return the compiler's self-description, or a default one."""
        if self._describe_fn is not None:
            info = self._describe_fn()
            if isinstance(info, CompilerInfo):
                return info
            logger.warning(
                "%s.describe() returned %s, using default info",
                type(self._compiler).__name__,
                type(info).__name__,
            )
        return CompilerInfo(
            name=type(self._compiler).__name__,
            version="dev",
            standard_support=(StandardVersion.IEEE1800_2017,),
        )

    def __enter__(self) -> CompilerAdapter:
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # ── Bound compile implementations ────────────────────────────────

    def _compile_advanced(self, source: str) -> CompileResult:
        start = time.perf_counter_ns()
        result = self._compiler.compile_advanced(source)  # type: ignore[attr-defined]
        elapsed = time.perf_counter_ns() - start

        if not isinstance(result, CompileResult):
            msg = (
                f"{type(self._compiler).__name__}.compile_advanced returned "
                f"{type(result).__name__}, expected CompileResult"
            )
            raise HostFailure(msg)

        if result.metrics.compile_time_ns == 0:
            result.metrics.compile_time_ns = elapsed
        return result

    def _compile_simple(self, source: str) -> CompileResult:
        start = time.perf_counter_ns()
        try:
            self._compiler.compile(source)  # type: ignore[attr-defined]
        except HOST_FAILURES:
            raise
        except Exception as exc:
            elapsed = time.perf_counter_ns() - start
            return CompileResult.failed(
                f"Compilation failed: {type(exc).__name__}: {exc}",
                ErrorCategory.SYNTAX,
                metrics=CompileMetrics(compile_time_ns=elapsed),
            )

        elapsed = time.perf_counter_ns() - start
        return CompileResult(
            success=True,
            metrics=CompileMetrics(
                compile_time_ns=elapsed,
                lines_processed=count_lines(source),
            ),
        )
