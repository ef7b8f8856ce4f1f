"""Unit tests for the numeral rewriting pass."""

from __future__ import annotations

import pytest

from swl.passes.numerals import to_decimal
from swl.pipeline import run


def rewrite(source: str) -> str:
    return run(source, ["numerals"])


class TestToDecimal:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("0x1_0", "16"),
            ("0b1000_0001", "129"),
            ("-0x10", "-16"),
            ("offset=0x10", "offset=16"),
            ("align=0b100", "align=4"),
            ("16", None),
            ("0x1.8p3", None),
            ("$0x10", None),
            ("offset=4", None),
            ("0X10", None),
        ],
    )
    def test_to_decimal(self, text: str, expected: str | None) -> None:
        assert to_decimal(text) == expected


class TestRewriteNumerals:
    def test_hex(self) -> None:
        assert rewrite("(module (i32.const 0x1_0))") == "(module (i32.const 16))"

    def test_binary(self) -> None:
        assert rewrite("(module (i32.const 0b1000_0001))") == "(module (i32.const 129))"

    def test_nested_and_memargs(self) -> None:
        output = rewrite(
            "(module (func (i32.load offset=0x10 align=0b100 (i32.const 0xff))))"
        )
        assert output == "(module (func (i32.load offset=16 align=4 (i32.const 255))))"

    def test_strings_and_floats_untouched(self) -> None:
        source = '(module (data (i32.const 0) "0x10") (f32.const 0x1.8p3))'
        assert rewrite(source) == '(module (data (i32.const 0) "0x10") (f32.const 0x1.8p3))'
