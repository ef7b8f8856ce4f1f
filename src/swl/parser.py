"""S-expression parser for the WebAssembly text format.

Comments (`;; line` and nested `(; block ;)`) are skipped and do not appear
in the tree, so they are lost on a parse/serialize round trip. Whitespace
between tokens is not preserved either.
"""

from __future__ import annotations

from typing import NoReturn

from swl.errors import ParseError
from swl.tree import Atom, Node, SExpr


def parse(text: str, source: str | None = None) -> Node:
    """Parse `text` into a single root node.

    Args:
        text: Source text.
        source: Name of the source, used in error messages.

    Returns:
        The root node.

    Raises:
        ParseError: If the text is not exactly one well-formed expression.
    """
    return Parser(text, source).parse()


class Parser:
    """Iterative S-expression parser.

    Nesting is tracked with an explicit stack, so deeply nested input does
    not hit the interpreter's recursion limit.
    """

    def __init__(self, text: str, source: str | None = None) -> None:
        self.text = text
        self.source = source
        self.pos = 0
        # Character index -> byte offset, only needed for non-ASCII input
        self._byte_offsets: list[int] | None = None
        if not text.isascii():
            offsets = [0]
            for char in text:
                offsets.append(offsets[-1] + len(char.encode("utf-8")))
            self._byte_offsets = offsets

    def parse(self) -> Node:
        self._skip_trivia()
        if self._at_end():
            self._fail("Unexpected end of input, expected an expression")
        root = self._parse_node()
        self._skip_trivia()
        if not self._at_end():
            self._fail("Unexpected content after the root expression")
        return root

    # =========================================================================
    # Nodes
    # =========================================================================

    def _parse_node(self) -> Node:
        char = self.text[self.pos]
        if char == ")":
            self._fail("Unexpected ')'")
        if char != "(":
            return self._parse_atom()

        opens = [self.pos]
        stack = [SExpr(offset=self._byte_offset(self.pos))]
        self.pos += 1
        while True:
            self._skip_trivia()
            if self._at_end():
                self._fail("Unterminated list, missing ')'", opens[-1])
            char = self.text[self.pos]
            if char == "(":
                node = SExpr(offset=self._byte_offset(self.pos))
                stack[-1].items.append(node)
                stack.append(node)
                opens.append(self.pos)
                self.pos += 1
            elif char == ")":
                self.pos += 1
                opens.pop()
                done = stack.pop()
                if not stack:
                    return done
            else:
                stack[-1].items.append(self._parse_atom())

    def _parse_atom(self) -> Atom:
        text = self.text
        start = self.pos
        while self.pos < len(text):
            char = text[self.pos]
            if char.isspace() or char in "()":
                break
            if char == ";" and text.startswith(";;", self.pos):
                break
            if char == '"':
                self._skip_string()
                continue
            self.pos += 1
        return Atom(text[start : self.pos], self._byte_offset(start))

    def _skip_string(self) -> None:
        start = self.pos
        self.pos += 1
        while True:
            if self.pos >= len(self.text):
                self._fail("Unterminated string literal", start)
            char = self.text[self.pos]
            if char == "\\":
                # The escaped character never closes the string
                self.pos += 2
            elif char == '"':
                self.pos += 1
                return
            else:
                self.pos += 1

    # =========================================================================
    # Whitespace and comments
    # =========================================================================

    def _skip_trivia(self) -> None:
        text = self.text
        while self.pos < len(text):
            if text[self.pos].isspace():
                self.pos += 1
            elif text.startswith(";;", self.pos):
                newline = text.find("\n", self.pos)
                self.pos = len(text) if newline == -1 else newline + 1
            elif text.startswith("(;", self.pos):
                self._skip_block_comment()
            else:
                break

    def _skip_block_comment(self) -> None:
        text = self.text
        start = self.pos
        depth = 1
        self.pos += 2
        while depth:
            if self.pos >= len(text):
                self._fail("Unterminated block comment", start)
            if text.startswith("(;", self.pos):
                depth += 1
                self.pos += 2
            elif text.startswith(";)", self.pos):
                depth -= 1
                self.pos += 2
            else:
                self.pos += 1

    # =========================================================================
    # Helpers
    # =========================================================================

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _byte_offset(self, pos: int) -> int:
        if self._byte_offsets is None:
            return pos
        return self._byte_offsets[min(pos, len(self.text))]

    def _fail(self, message: str, pos: int | None = None) -> NoReturn:
        if pos is None:
            pos = self.pos
        pos = min(pos, len(self.text))
        line = self.text.count("\n", 0, pos) + 1
        column = pos - (self.text.rfind("\n", 0, pos) + 1) + 1
        raise ParseError(message, self._byte_offset(pos), line, column, self.source)


__all__ = ["Parser", "parse"]
