"""Reference backend: a placeholder front end so the harness runs out of the box.

It tokenizes the source, checks that ``module``/``endmodule`` and brackets
balance, and fabricates a one-node module AST.  It is not a SystemVerilog
parser; plug a real compiler in through the registry for meaningful results.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

from svconform.adapters.base import (
    CompileError,
    CompileMetrics,
    CompileResult,
    CompilerInfo,
    CompileWarning,
    ErrorCategory,
    StandardVersion,
    SVCompiler,
    WarningCategory,
    count_lines,
)

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(
    r"""
    (?P<newline>\n)
    | (?P<space>[ \t\r\f]+)
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<open_comment>/\*)
    | (?P<string>"(?:\\.|[^"\\\n])*")
    | (?P<identifier>[A-Za-z_][A-Za-z0-9_$]*)
    | (?P<number>[0-9][0-9_]*)
    | (?P<symbol>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_BRACKETS = {")": "(", "]": "[", "}": "{"}


@dataclass
class Token:
    """One lexical token."""

    kind: str
    value: str
    line: int
    column: int


class LexicalError(Exception):
    """Raised when the source cannot be tokenized."""

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens, dropping whitespace and comments."""
    tokens: list[Token] = []
    line, line_start = 1, 0
    for match in _TOKEN_RE.finditer(source):
        kind = match.lastgroup or "symbol"
        value = match.group()
        column = match.start() - line_start + 1
        if kind == "open_comment":
            raise LexicalError("unterminated block comment", line, column)
        if kind not in {"space", "newline", "line_comment", "block_comment"}:
            tokens.append(Token(kind, value, line, column))
        newlines = value.count("\n")
        if newlines:
            line += newlines
            line_start = match.start() + value.rfind("\n") + 1
    return tokens


class ReferenceCompiler(SVCompiler):
    """Placeholder SystemVerilog front end."""

    def __init__(self, *, enable_warnings: bool = True) -> None:
        self.enable_warnings = enable_warnings
        self.last_metrics = CompileMetrics()

    @property
    def name(self) -> str:
        return "reference"

    def describe(self) -> CompilerInfo:
        return CompilerInfo(
            name="svconform-reference",
            version="0.1.0",
            standard_support=(StandardVersion.IEEE1800_2017, StandardVersion.IEEE1800_2012),
            features=("lexical_analysis", "structure_check", "performance_metrics"),
        )

    def compile_advanced(self, source: str) -> CompileResult:
        start = time.perf_counter_ns()
        result = CompileResult(metrics=CompileMetrics(lines_processed=count_lines(source)))
        metrics = result.metrics

        try:
            tokens = tokenize(source)
        except LexicalError as exc:
            result.add_error(
                CompileError(
                    message=f"Lexical analysis failed: {exc}",
                    line=exc.line,
                    column=exc.column,
                    category=ErrorCategory.LEXICAL,
                )
            )
            metrics.compile_time_ns = time.perf_counter_ns() - start
            return result
        metrics.lexing_time_ns = time.perf_counter_ns() - start
        metrics.tokens_processed = len(tokens)

        parse_start = time.perf_counter_ns()
        for error in self._check_structure(tokens):
            result.add_error(error)
        metrics.parsing_time_ns = time.perf_counter_ns() - parse_start

        if result.success:
            result.ast = {"module": self._module_name(tokens)}
            metrics.ast_nodes_created = 1
            if self.enable_warnings:
                self._add_warnings(source, result)

        metrics.compile_time_ns = time.perf_counter_ns() - start
        self.last_metrics = metrics
        return result

    def _check_structure(self, tokens: list[Token]) -> list[CompileError]:
        errors: list[CompileError] = []
        stack: list[Token] = []
        open_modules: list[Token] = []

        for token in tokens:
            if token.kind == "identifier":
                if token.value in {"module", "macromodule"}:
                    open_modules.append(token)
                elif token.value == "endmodule":
                    if not open_modules:
                        errors.append(self._error("'endmodule' without 'module'", token))
                    else:
                        open_modules.pop()
            elif token.kind == "symbol":
                if token.value in "([{":
                    stack.append(token)
                elif token.value in _BRACKETS:
                    if not stack or stack[-1].value != _BRACKETS[token.value]:
                        errors.append(self._error(f"unexpected '{token.value}'", token))
                    else:
                        stack.pop()

        errors.extend(self._error(f"unclosed '{t.value}'", t) for t in stack)
        errors.extend(self._error("'module' without 'endmodule'", t) for t in open_modules)
        return errors

    @staticmethod
    def _error(message: str, token: Token) -> CompileError:
        return CompileError(
            message=message,
            line=token.line,
            column=token.column,
            category=ErrorCategory.SYNTAX,
        )

    @staticmethod
    def _module_name(tokens: list[Token]) -> str:
        for current, following in zip(tokens, tokens[1:]):
            if current.value == "module" and following.kind == "identifier":
                return following.value
        return "unknown_module"

    @staticmethod
    def _add_warnings(source: str, result: CompileResult) -> None:
        if "synthesis" in source or "synopsys" in source:
            result.add_warning(
                CompileWarning(
                    message="Synthesis pragmas detected - may not be portable",
                    category=WarningCategory.PORTABILITY,
                )
            )
        if "always @(*)" in source:
            result.add_warning(
                CompileWarning(
                    message="Consider using always_comb for combinational logic",
                    category=WarningCategory.PERFORMANCE,
                )
            )
