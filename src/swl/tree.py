"""Tree model for parsed S-expressions.

A node is either an `Atom` (an immutable token kept exactly as written in
the source) or an `SExpr` (an ordered, mutable list of child nodes).
Passes recognize forms by their leading atom and leave everything else
untouched.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

_INT_LITERAL = re.compile(
    r"""
    ^(?P<sign>[+-]?)
    (?:
        0x(?P<hex>[0-9a-fA-F](?:_?[0-9a-fA-F])*)
      | 0b(?P<bin>[01](?:_?[01])*)
      | (?P<dec>[0-9](?:_?[0-9])*)
    )$
    """,
    re.VERBOSE,
)

_SIMPLE_ESCAPES = frozenset('tnr"\'\\')
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


@dataclass(frozen=True)
class Atom:
    """A single token: identifier, keyword, number or string literal.

    Attributes:
        text: Exact source text, including quotes and raw escapes.
        offset: Byte offset in the source, -1 for synthesized atoms.
    """

    text: str
    offset: int = field(default=-1, compare=False)

    @property
    def is_string(self) -> bool:
        return len(self.text) >= 2 and self.text[0] == '"' and self.text[-1] == '"'

    @property
    def is_identifier(self) -> bool:
        return self.text.startswith("$")

    def unquoted(self) -> str:
        """Return the body of a string literal, without the quotes."""
        if not self.is_string:
            msg = f"Atom {self.text!r} is not a string literal"
            raise ValueError(msg)
        return self.text[1:-1]

    def __str__(self) -> str:
        return self.text


@dataclass
class SExpr:
    """A parenthesized list of nodes.

    Attributes:
        items: Child nodes in source order.
        offset: Byte offset of the opening parenthesis, -1 when synthesized.
    """

    items: list[Node] = field(default_factory=list)
    offset: int = field(default=-1, compare=False)

    @classmethod
    def of(cls, tag: str, *items: Node | str) -> SExpr:
        """Build a list from a tag and children; strings become atoms."""
        children: list[Node] = [Atom(tag)]
        children.extend(Atom(item) if isinstance(item, str) else item for item in items)
        return cls(children)

    @property
    def tag(self) -> str | None:
        """Text of the leading atom, or None for empty/list-headed lists."""
        if self.items and isinstance(self.items[0], Atom):
            return self.items[0].text
        return None

    def has_tag(self, *tags: str) -> bool:
        return self.tag in tags

    def forms(self) -> Iterator[SExpr]:
        """Iterate over immediate children that are lists."""
        for item in self.items:
            if isinstance(item, SExpr):
                yield item

    def atoms(self) -> Iterator[Atom]:
        """Iterate over immediate atom children, skipping the tag."""
        start = 1 if self.tag is not None else 0
        for item in self.items[start:]:
            if isinstance(item, Atom):
                yield item

    def find(self, *tags: str) -> SExpr | None:
        """Return the first immediate child list with one of the given tags."""
        for form in self.forms():
            if form.has_tag(*tags):
                return form
        return None

    def walk(self) -> Iterator[SExpr]:
        """Iterate over this list and all nested lists, pre-order."""
        stack: list[SExpr] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(list(node.forms())))

    def walk_atoms(self) -> Iterator[Atom]:
        """Iterate over every atom in the subtree, list by list in pre-order."""
        for node in self.walk():
            for item in node.items:
                if isinstance(item, Atom):
                    yield item


Node = Atom | SExpr


def is_module(node: Node) -> bool:
    """Return True if `node` is a `(module ...)` form."""
    return isinstance(node, SExpr) and node.has_tag("module")


def is_int_literal(text: str) -> bool:
    return _INT_LITERAL.match(text) is not None


def parse_int_literal(text: str) -> int:
    """Parse a decimal, hexadecimal (0x) or binary (0b) integer literal.

    Underscores between digits are allowed, as in the text format.

    Raises:
        ValueError: If `text` is not an integer literal.
    """
    match = _INT_LITERAL.match(text)
    if match is None:
        msg = f"Not an integer literal: {text!r}"
        raise ValueError(msg)
    if match["hex"] is not None:
        value = int(match["hex"].replace("_", ""), 16)
    elif match["bin"] is not None:
        value = int(match["bin"].replace("_", ""), 2)
    else:
        value = int(match["dec"].replace("_", ""), 10)
    return -value if match["sign"] == "-" else value


def string_byte_length(body: str) -> int:
    """Return the number of bytes a string literal body encodes.

    Handles the single-character escapes, two-digit hex escapes (`\\41`) and
    unicode escapes (`\\u{1F600}`). Other characters count as their UTF-8
    length.

    Raises:
        ValueError: On a malformed escape sequence.
    """
    count = 0
    i = 0
    n = len(body)
    while i < n:
        char = body[i]
        if char != "\\":
            count += len(char.encode("utf-8"))
            i += 1
            continue
        if i + 1 >= n:
            msg = "Escape with no character"
            raise ValueError(msg)
        nxt = body[i + 1]
        if nxt in _HEX_DIGITS:
            if i + 2 >= n or body[i + 2] not in _HEX_DIGITS:
                msg = "Hex escape with only one digit"
                raise ValueError(msg)
            count += 1
            i += 3
        elif nxt == "u":
            end = body.find("}", i)
            if i + 2 >= n or body[i + 2] != "{" or end == -1:
                msg = "Malformed unicode escape"
                raise ValueError(msg)
            code = int(body[i + 3 : end].replace("_", ""), 16)
            if code > 0x10FFFF:
                msg = f"Unicode escape out of range: {code:#x}"
                raise ValueError(msg)
            count += len(chr(code).encode("utf-8", "surrogatepass"))
            i = end + 1
        elif nxt in _SIMPLE_ESCAPES:
            count += 1
            i += 2
        else:
            msg = f"Unknown escape sequence \\{nxt}"
            raise ValueError(msg)
    return count


__all__ = [
    "Atom",
    "Node",
    "SExpr",
    "is_int_literal",
    "is_module",
    "parse_int_literal",
    "string_byte_length",
]
