"""Rewrite hexadecimal and binary integer literals as decimal.

`0x1_0` becomes `16` and `0b1000_0001` becomes `129`. Memory arguments
(`offset=0x10`, `align=0b100`) are rewritten too. Hexadecimal floats such as
`0x1.8p3` and anything that is not an integer literal are left as written.
"""

from __future__ import annotations

import logging
import re

from swl.context import PassContext, expect_module
from swl.tree import Atom, SExpr, is_int_literal, parse_int_literal

logger = logging.getLogger(__name__)

_PREFIXED = re.compile(r"^[+-]?0[xb]")
_MEMARG_KEYS = ("offset=", "align=")


def to_decimal(text: str) -> str | None:
    """Return the decimal spelling of a prefixed integer literal, or None."""
    if _PREFIXED.match(text) and is_int_literal(text):
        return str(parse_int_literal(text))
    for key in _MEMARG_KEYS:
        if text.startswith(key):
            value = to_decimal(text[len(key) :])
            return None if value is None else key + value
    return None


def rewrite_numerals(module: SExpr, ctx: PassContext) -> None:
    """Replace prefixed integer literals everywhere in the module."""
    expect_module(module, "numerals")
    rewritten = 0
    for node in module.walk():
        for idx, item in enumerate(node.items):
            if not isinstance(item, Atom) or item.is_string:
                continue
            decimal = to_decimal(item.text)
            if decimal is not None:
                node.items[idx] = Atom(decimal, item.offset)
                rewritten += 1
    logger.debug("Rewrote %d numeric literals", rewritten)


__all__ = ["rewrite_numerals", "to_decimal"]
