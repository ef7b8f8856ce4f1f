"""Unit tests for top-level form sorting."""

from __future__ import annotations

from swl.parser import parse
from swl.passes.sorter import Category, categorize, index_space
from swl.pipeline import run
from swl.tree import SExpr


def sort(source: str) -> str:
    return run(source, ["sort"])


class TestCategorize:
    def test_categories(self) -> None:
        cases = {
            '(import "a" "b" (func))': Category.IMPORT,
            '(func $f (import "a" "b"))': Category.IMPORT,
            '(memory (import "a" "b") 1)': Category.IMPORT,
            "(type $t (func))": Category.DECLARATION,
            "(memory 1)": Category.DECLARATION,
            "(global $g i32 (i32.const 0))": Category.DECLARATION,
            '(data (i32.const 0) "x")': Category.SEGMENT,
            "(elem (i32.const 0) $f)": Category.SEGMENT,
            "(func $f)": Category.FUNCTION,
            '(export "f" (func $f))': Category.EXPORT,
            "(start $f)": Category.START,
            "(@custom)": Category.OTHER,
            "()": Category.OTHER,
        }
        for text, expected in cases.items():
            form = parse(text)
            assert isinstance(form, SExpr)
            assert categorize(form) == expected, text


class TestSortForms:
    def test_imports_first(self) -> None:
        output = sort(
            '(module (func $f) (import "a" "b" (func $i1))'
            ' (data (i32.const 0) "x") (import "c" "d" (func $i2)))'
        )
        assert output == (
            '(module (import "a" "b" (func $i1)) (import "c" "d" (func $i2))'
            ' (data (i32.const 0) "x") (func $f))'
        )

    def test_inline_import_sorted_with_imports(self) -> None:
        output = sort('(module (func $1) (func (import "a")) (import "b"))')
        assert output == '(module (func (import "a")) (import "b") (func $1))'

    def test_full_order(self) -> None:
        output = sort(
            "(module (start $f) (export \"f\" (func $f)) (func $f)"
            ' (data (i32.const 0) "x") (memory 1) (import "a" "b" (func $i)) (@custom))'
        )
        assert output == (
            '(module (import "a" "b" (func $i)) (memory 1) (data (i32.const 0) "x")'
            ' (func $f) (export "f" (func $f)) (start $f) (@custom))'
        )

    def test_stable_within_category(self) -> None:
        output = sort("(module (func $c) (memory 1) (func $a) (func $b))")
        assert output == "(module (memory 1) (func $c) (func $a) (func $b))"

    def test_module_name_kept_in_front(self) -> None:
        output = sort('(module $m (func $f) (import "a" "b" (func $i)))')
        assert output == '(module $m (import "a" "b" (func $i)) (func $f))'

    def test_idempotent(self) -> None:
        once = sort(
            '(module (func $f) (start $f) (import "a" "b" (func $i)) (global $g i32 (i32.const 1)))'
        )
        assert sort(once) == once


class TestIndexSpace:
    def test_imports_first(self) -> None:
        module = parse(
            "(module (global $a i32 (i32.const 0))"
            ' (import "e" "g" (global $b i32))'
            ' (global $c (import "e" "h") i32)'
            ' (import "e" "f" (func $f)))'
        )
        assert isinstance(module, SExpr)
        entries = [
            (str(decl.items[1]), imported)
            for decl, imported in index_space(module, "global")
        ]
        assert entries == [("$b", True), ("$c", True), ("$a", False)]

    def test_other_kinds_ignored(self) -> None:
        module = parse('(module (memory 1) (import "e" "g" (global $b i32)))')
        assert isinstance(module, SExpr)
        assert index_space(module, "table") == []
