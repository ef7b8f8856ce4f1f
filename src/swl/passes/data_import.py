"""Inline binary files into data segments.

`(data (i32.const 0) (import "logo.bin" (raw)))` becomes
`(data (i32.const 0) "\\89\\50\\4e...")`, with every byte written as a
two-digit hex escape.
"""

from __future__ import annotations

import logging

from swl.context import PassContext, expect_module
from swl.errors import MalformedFormError
from swl.serializer import serialize
from swl.tree import Atom, Node, SExpr

logger = logging.getLogger(__name__)


def is_raw_import(node: Node) -> bool:
    """Match `(import <atom> (raw))`."""
    return (
        isinstance(node, SExpr)
        and node.has_tag("import")
        and len(node.items) == 3
        and isinstance(node.items[1], Atom)
        and isinstance(node.items[2], SExpr)
        and node.items[2].items == [Atom("raw")]
    )


def escape_bytes(data: bytes) -> str:
    """Render bytes as a string literal of hex escapes."""
    return '"' + "".join(f"\\{byte:02x}" for byte in data) + '"'


def import_data(module: SExpr, ctx: PassContext) -> None:
    """Replace raw imports inside top-level data segments with their bytes."""
    expect_module(module, "data_import")
    for form in module.forms():
        if not form.has_tag("data"):
            continue
        for idx, item in enumerate(form.items):
            if not is_raw_import(item):
                continue
            assert isinstance(item, SExpr)
            path_atom = item.items[1]
            assert isinstance(path_atom, Atom)
            if not path_atom.is_string:
                msg = "Raw import expects a string path"
                raise MalformedFormError(msg, serialize(item))
            path = path_atom.unquoted()
            data = ctx.loader.load_raw(path)
            logger.debug("Inlined %d bytes from %s", len(data), path)
            form.items[idx] = Atom(escape_bytes(data), item.offset)


__all__ = ["escape_bytes", "import_data", "is_raw_import"]
