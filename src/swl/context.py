"""Pass context - shared state handed to every pass."""

from __future__ import annotations

from dataclasses import dataclass, field

from swl.errors import NotAModuleError
from swl.loader import Loader, NullLoader
from swl.tree import Node, SExpr, is_module


@dataclass
class PassContext:
    """State shared by the passes of one pipeline run.

    Attributes:
        loader: Resolves import paths to source text and raw bytes.
        origin: Path of the root source, if it came from the loader. It
            seeds import cycle detection, so a file importing itself is
            caught on the first hop.
    """

    loader: Loader = field(default_factory=NullLoader)
    origin: str | None = None


def expect_module(node: Node, pass_name: str) -> SExpr:
    """Return `node` as a module, or raise NotAModuleError."""
    if not is_module(node):
        msg = f"The {pass_name} pass can only be applied to a top-level (module ...) form"
        raise NotAModuleError(msg)
    assert isinstance(node, SExpr)
    return node


__all__ = ["PassContext", "expect_module"]
