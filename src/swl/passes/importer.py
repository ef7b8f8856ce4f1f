"""File imports: splice `(import "path" (file))` forms with the file's contents.

Imports are expanded depth-first. The chain of paths currently being
expanded is tracked so that a file importing itself, directly or through
other files, fails with CyclicImportError. A file reached through two
independent branches is expanded twice; forms are not deduplicated.
"""

from __future__ import annotations

import logging

from swl.context import PassContext, expect_module
from swl.errors import (
    CyclicImportError,
    ImportSyntaxError,
    MalformedFormError,
    NotAModuleError,
    ParseError,
)
from swl.parser import parse
from swl.serializer import serialize
from swl.tree import Atom, Node, SExpr, is_module

logger = logging.getLogger(__name__)


def is_file_import(node: Node) -> bool:
    """Match `(import <atom> (file))`."""
    return (
        isinstance(node, SExpr)
        and node.has_tag("import")
        and len(node.items) == 3
        and isinstance(node.items[1], Atom)
        and isinstance(node.items[2], SExpr)
        and node.items[2].items == [Atom("file")]
    )


def import_path(node: SExpr) -> str:
    """Return the unquoted path of a file import form."""
    path = node.items[1]
    assert isinstance(path, Atom)
    if not path.is_string:
        msg = "File import expects a string path"
        raise MalformedFormError(msg, serialize(node))
    return path.unquoted()


def import_files(module: SExpr, ctx: PassContext) -> None:
    """Expand every top-level file import of `module` in place."""
    expect_module(module, "import")
    chain = (ctx.origin,) if ctx.origin is not None else ()
    _expand(module, ctx, chain)


def _expand(module: SExpr, ctx: PassContext, chain: tuple[str, ...]) -> None:
    if not any(is_file_import(item) for item in module.items):
        return

    items: list[Node] = []
    for item in module.items:
        if not is_file_import(item):
            items.append(item)
            continue
        assert isinstance(item, SExpr)
        path = import_path(item)
        if path in chain:
            raise CyclicImportError([*chain, path])

        logger.debug("Expanding import %s (depth %d)", path, len(chain))
        imported = load_module(path, ctx)
        _expand(imported, ctx, (*chain, path))
        items.extend(imported.forms())
    module.items = items


def load_module(path: str, ctx: PassContext) -> SExpr:
    """Load and parse the module at `path`.

    Raises:
        ImportNotFoundError: If the loader has no such file.
        ImportSyntaxError: If the file does not parse.
        NotAModuleError: If the file is not a `(module ...)` form.
    """
    try:
        text = ctx.loader.resolve(path)
    except UnicodeDecodeError as e:
        msg = f"Invalid UTF-8: {e.reason}"
        raise ImportSyntaxError(path, ParseError(msg, e.start)) from e
    try:
        node = parse(text, source=path)
    except ParseError as e:
        raise ImportSyntaxError(path, e) from e
    if not is_module(node):
        msg = f"Imported file {path} is not a (module ...) form"
        raise NotAModuleError(msg)
    assert isinstance(node, SExpr)
    return node


__all__ = ["import_files", "import_path", "is_file_import", "load_module"]
