"""Unit tests for pass selection and pipeline runs."""

from __future__ import annotations

import pytest

from swl.errors import NotAModuleError, ParseError, UnknownPassRequestedError
from swl.loader import MemoryLoader
from swl.passes import PASS_ORDER
from swl.pipeline import DEFAULT_PASSES, Pipeline, parse_pass_names, run
from swl.testing import link_sources
from swl.tree import SExpr


class TestParsePassNames:
    def test_comma_separated(self) -> None:
        assert parse_pass_names("sort, import") == ("import", "sort")

    def test_iterable(self) -> None:
        assert parse_pass_names(["sort", "size_adjust", "import"]) == (
            "import",
            "size_adjust",
            "sort",
        )

    def test_duplicates_and_blanks(self) -> None:
        assert parse_pass_names("sort,,sort, ") == ("sort",)
        assert parse_pass_names("") == ()

    def test_all_passes(self) -> None:
        assert parse_pass_names(reversed(PASS_ORDER)) == PASS_ORDER

    def test_unknown(self) -> None:
        with pytest.raises(UnknownPassRequestedError) as exc_info:
            parse_pass_names("import, bogus")
        assert exc_info.value.name == "bogus"
        assert "import" in exc_info.value.known


class TestPipeline:
    def test_defaults(self) -> None:
        assert Pipeline().passes == DEFAULT_PASSES

    def test_no_passes_normalizes(self) -> None:
        assert run("(module\n  (func $f))", []) == "(module (func $f))"

    def test_requested_order_does_not_matter(self) -> None:
        sources = [
            '(module (func $a) (import "1" (file)))',
            '(module (import "env" "f" (func $f)))',
        ]
        assert link_sources(sources, "import, sort") == link_sources(sources, "sort, import")
        assert link_sources(sources, "sort, import") == (
            '(module (import "env" "f" (func $f)) (func $a))'
        )

    def test_all_passes_together(self) -> None:
        output = link_sources(
            [
                '(module (func $a) (start $a) (export "e" (func $a)) (import "1" (file)))',
                '(module (memory $m 0) (data (memory $m) (i32.const 0x10000) "x")'
                " (func $b) (start $b))",
            ],
            PASS_ORDER,
        )
        assert output == (
            "(module (memory $m 2) (data (memory $m) (i32.const 65536) \"x\")"
            " (func $a) (func $b) (func $_swl_start_merger (call $a) (call $b))"
            ' (export "e" (func $a)) (start $_swl_start_merger))'
        )

    def test_link_file(self) -> None:
        loader = MemoryLoader(
            {
                "main.wat": '(module (import "lib.wat" (file)))',
                "lib.wat": "(module (func $lib))",
            }
        )
        module = Pipeline(["import"], loader).link_file("main.wat")
        assert isinstance(module, SExpr)
        assert [form.tag for form in module.forms()] == ["func"]

    def test_passes_require_a_module(self) -> None:
        with pytest.raises(NotAModuleError):
            run("(func $f)")
        with pytest.raises(NotAModuleError):
            run("module", ["sort"])

    def test_any_root_without_passes(self) -> None:
        assert run("(func $f\n  (nop))", []) == "(func $f (nop))"
        assert run("  module ", []) == "module"

    def test_parse_errors_propagate(self) -> None:
        with pytest.raises(ParseError):
            run("(module")
