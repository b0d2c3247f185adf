"""Compiler adapters: the data model, the capability-negotiated adapter and the backend registry."""

from svconform.adapters.adapter import Capabilities, CompilerAdapter
from svconform.adapters.base import (
    AdapterConstructionError,
    CompileError,
    CompileMetrics,
    CompileResult,
    CompilerInfo,
    CompileWarning,
    ErrorCategory,
    HostFailure,
    StandardVersion,
    SVCompiler,
    WarningCategory,
)

__all__ = [
    "AdapterConstructionError",
    "Capabilities",
    "CompileError",
    "CompileMetrics",
    "CompileResult",
    "CompileWarning",
    "CompilerAdapter",
    "CompilerInfo",
    "ErrorCategory",
    "HostFailure",
    "SVCompiler",
    "StandardVersion",
    "WarningCategory",
]
