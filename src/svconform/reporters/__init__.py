"""Reporters for conformance run results."""

from __future__ import annotations

from svconform.reporters.json_reporter import JSONReporter
from svconform.reporters.terminal import CLIReporter, reporter

__all__ = [
    "CLIReporter",
    "JSONReporter",
    "reporter",
]
