"""Tests for the reference backend."""

from __future__ import annotations

import pytest

from svconform.adapters.base import ErrorCategory, WarningCategory
from svconform.backends.reference_backend import LexicalError, ReferenceCompiler, tokenize


class TestTokenize:
    def test_skips_whitespace_and_comments(self) -> None:
        tokens = tokenize("module m; // trailing\n/* block */ endmodule")
        assert [t.value for t in tokens] == ["module", "m", ";", "endmodule"]

    def test_positions(self) -> None:
        tokens = tokenize("module m;\n  endmodule")
        endmodule = tokens[-1]
        assert (endmodule.line, endmodule.column) == (2, 3)

    def test_multiline_block_comment_advances_lines(self) -> None:
        tokens = tokenize("/* a\nb\nc */ x")
        assert tokens[0].line == 3

    def test_string_literal_is_one_token(self) -> None:
        tokens = tokenize('$display("a ( b");')
        assert [t.kind for t in tokens].count("string") == 1

    def test_unterminated_block_comment(self) -> None:
        with pytest.raises(LexicalError) as exc_info:
            tokenize("module m;\n/* never closed")
        assert exc_info.value.line == 2


class TestReferenceCompiler:
    def test_accepts_module(self) -> None:
        result = ReferenceCompiler().compile_advanced("module top(input logic a);\nendmodule\n")
        assert result.success
        assert result.ast == {"module": "top"}
        assert result.metrics.lines_processed == 3
        assert result.metrics.tokens_processed > 0
        assert result.metrics.compile_time_ns > 0

    def test_accepts_source_without_module(self) -> None:
        result = ReferenceCompiler().compile_advanced("package p; endpackage\n")
        assert result.success
        assert result.ast == {"module": "unknown_module"}

    def test_rejects_missing_endmodule(self) -> None:
        result = ReferenceCompiler().compile_advanced("module top;\n")
        assert not result.success
        assert "endmodule" in result.errors[0].message
        assert result.errors[0].category == ErrorCategory.SYNTAX
        assert result.errors[0].line == 1

    def test_rejects_unbalanced_brackets(self) -> None:
        result = ReferenceCompiler().compile_advanced("module top(;\nendmodule\n")
        assert not result.success
        assert any("unclosed '('" in e.message for e in result.errors)

    def test_rejects_stray_closing_bracket(self) -> None:
        result = ReferenceCompiler().compile_advanced("module top;\n]\nendmodule\n")
        assert result.errors[0].message == "unexpected ']'"
        assert result.errors[0].line == 2

    def test_lexical_error(self) -> None:
        result = ReferenceCompiler().compile_advanced("module top; /* oops")
        assert not result.success
        assert result.errors[0].category == ErrorCategory.LEXICAL

    def test_directive_block_is_a_comment(self) -> None:
        source = "/*\n:name: t\n:tags: 5.4 (\n*/\nmodule t; endmodule\n"
        assert ReferenceCompiler().compile_advanced(source).success

    def test_warnings(self) -> None:
        source = "module t; // synopsys translate_off\nalways @(*) a = b;\nendmodule\n"
        result = ReferenceCompiler().compile_advanced(source)
        categories = {w.category for w in result.warnings}
        assert categories == {WarningCategory.PORTABILITY, WarningCategory.PERFORMANCE}
        assert result.success

    def test_warnings_disabled(self) -> None:
        source = "module t; always @(*) a = b; endmodule"
        result = ReferenceCompiler(enable_warnings=False).compile_advanced(source)
        assert result.warnings == []

    def test_last_metrics_recorded(self) -> None:
        compiler = ReferenceCompiler()
        result = compiler.compile_advanced("module t; endmodule")
        assert compiler.last_metrics is result.metrics

    def test_describe(self) -> None:
        info = ReferenceCompiler().describe()
        assert info.name == "svconform-reference"
        assert "lexical_analysis" in info.features

    def test_name(self) -> None:
        assert ReferenceCompiler().name == "reference"
