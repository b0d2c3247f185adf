"""Compiler-facing data model and the abstract backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class SVConformError(Exception):
    """Base class for harness-internal errors."""


class AdapterConstructionError(SVConformError):
    """Raised when a compiler exposes no compatible compile operation."""


class BackendNotFoundError(SVConformError):
    """Raised when a backend name is not registered."""


class HostFailure(SVConformError):
    """Failure of the compiler host itself (crash, timeout, exhausted resources).

    Unlike a rejected fixture, a host failure is not a compile diagnostic and
    always propagates out of the adapter.
    """


class ErrorCategory(Enum):
    """Stage of compilation that produced an error."""

    LEXICAL = "lexical"
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    TYPE_CHECK = "type_check"
    ELABORATION = "elaboration"
    OTHER = "other"


class WarningCategory(Enum):
    """Kind of compile warning."""

    UNUSED = "unused"
    DEPRECATED = "deprecated"
    PERFORMANCE = "performance"
    PORTABILITY = "portability"
    GENERAL = "general"


class StandardVersion(Enum):
    """Language standards a compiler may claim to support."""

    IEEE1364_1995 = "ieee1364_1995"
    IEEE1364_2001 = "ieee1364_2001"
    IEEE1364_2005 = "ieee1364_2005"
    IEEE1800_2005 = "ieee1800_2005"
    IEEE1800_2009 = "ieee1800_2009"
    IEEE1800_2012 = "ieee1800_2012"
    IEEE1800_2017 = "ieee1800_2017"
    IEEE1800_2023 = "ieee1800_2023"


def _location_prefix(file: str | None, line: int, column: int) -> str:
    parts: list[str] = []
    if file:
        parts.append(file)
    if line:
        parts.append(str(line))
        if column:
            parts.append(str(column))
    return ":".join(parts) + ": " if parts else ""


@dataclass
class CompileError:
    """A single compile error."""

    message: str
    line: int = 0
    column: int = 0
    file: str | None = None
    category: ErrorCategory = ErrorCategory.SYNTAX

    def __str__(self) -> str:
        prefix = _location_prefix(self.file, self.line, self.column)
        return f"{prefix}{self.category.value}: {self.message}"


@dataclass
class CompileWarning:
    """A single compile warning."""

    message: str
    line: int = 0
    column: int = 0
    file: str | None = None
    category: WarningCategory = WarningCategory.GENERAL

    def __str__(self) -> str:
        prefix = _location_prefix(self.file, self.line, self.column)
        return f"{prefix}{self.category.value}: {self.message}"


@dataclass
class CompileMetrics:
    """Timing and size counters, filled in as compile stages complete."""

    compile_time_ns: int = 0
    lexing_time_ns: int = 0
    parsing_time_ns: int = 0
    semantic_time_ns: int = 0
    tokens_processed: int = 0
    lines_processed: int = 0
    ast_nodes_created: int = 0
    memory_used_bytes: int = 0

    @property
    def compile_time_ms(self) -> float:
        """Total compile time in milliseconds."""
        return self.compile_time_ns / 1_000_000


@dataclass
class CompileResult:
    """Outcome of one compile invocation.

    The result owns its diagnostics; it is dropped by the runner once the
    fixture has been classified.
    """

    success: bool = True
    errors: list[CompileError] = field(default_factory=list)
    warnings: list[CompileWarning] = field(default_factory=list)
    metrics: CompileMetrics = field(default_factory=CompileMetrics)
    ast: object | None = None

    @classmethod
    def failed(
        cls,
        message: str,
        category: ErrorCategory = ErrorCategory.SYNTAX,
        *,
        metrics: CompileMetrics | None = None,
    ) -> CompileResult:
        """Build a failed result carrying exactly one error."""
        return cls(
            success=False,
            errors=[CompileError(message=message, category=category)],
            metrics=metrics or CompileMetrics(),
        )

    def add_error(self, error: CompileError) -> None:
        """Append *error*; a result with errors is never successful."""
        self.errors.append(error)
        self.success = False

    def add_warning(self, warning: CompileWarning) -> None:
        """Append *warning* without affecting ``success``."""
        self.warnings.append(warning)

    @property
    def error_count(self) -> int:
        """Number of errors reported."""
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        """Number of warnings reported."""
        return len(self.warnings)


@dataclass(frozen=True)
class CompilerInfo:
    """Static capability description of a compiler implementation."""

    name: str = "Unknown"
    version: str = "0.0.0"
    standard_support: tuple[StandardVersion, ...] = ()
    features: tuple[str, ...] = ()


def count_lines(source: str) -> int:
    """Return the number of lines in *source* (newlines + 1)."""
    return source.count("\n") + 1


class SVCompiler(ABC):
    """Abstract base class for SystemVerilog compiler backends.

    ``compile_advanced`` is the only required operation.  ``initialize``,
    ``shutdown`` and ``describe`` have working defaults so that a backend
    only overrides what it actually supports.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier (e.g. ``'reference'``, ``'command'``)."""

    @abstractmethod
    def compile_advanced(self, source: str) -> CompileResult:
        """Compile *source* and return a structured result.

        Rejected input is reported through ``CompileResult.success`` and its
        errors.  Exceptions are reserved for host-level failures.
        """

    def initialize(self) -> None:
        """Prepare the compiler for use."""

    def shutdown(self) -> None:
        """Release any resources held by the compiler."""

    def describe(self) -> CompilerInfo:
        """Return static information about this compiler."""
        return CompilerInfo(name=self.name)
