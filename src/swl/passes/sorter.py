"""Stable reordering of top-level forms by category.

Encoders expect imports before definitions. Forms are grouped into a fixed
sequence of categories; within a category the input order is kept.
Cross-references between forms are not inspected.
"""

from __future__ import annotations

from enum import IntEnum

from swl.context import PassContext, expect_module
from swl.tree import Atom, Node, SExpr


class Category(IntEnum):
    """Top-level form categories, in output order."""

    IMPORT = 0
    DECLARATION = 1
    SEGMENT = 2
    FUNCTION = 3
    EXPORT = 4
    START = 5
    OTHER = 6


DECLARATION_TAGS = frozenset({"type", "rec", "memory", "table", "global", "tag"})
SEGMENT_TAGS = frozenset({"data", "elem"})

# Definitions that may carry an inline (import "mod" "name") abbreviation
IMPORTABLE_TAGS = frozenset({"func", "memory", "table", "global", "tag"})


def has_inline_import(form: SExpr) -> bool:
    return form.tag in IMPORTABLE_TAGS and form.find("import") is not None


def index_space(module: SExpr, kind: str) -> list[tuple[SExpr, bool]]:
    """Return the declarations of one kind (`memory`, `global`, ...) in index order.

    Imports come first, whether written as `(import "m" "n" (kind ...))` or
    as a definition with an inline `(import ...)`. Definitions follow. Each
    group keeps its textual order.

    Returns:
        Pairs of the declaration list and whether it is imported.
    """
    imported: list[SExpr] = []
    defined: list[SExpr] = []
    for form in module.forms():
        if form.has_tag("import"):
            decl = form.find(kind)
            if decl is not None:
                imported.append(decl)
        elif form.has_tag(kind):
            if has_inline_import(form):
                imported.append(form)
            else:
                defined.append(form)
    return [(decl, True) for decl in imported] + [(decl, False) for decl in defined]


def categorize(form: SExpr) -> Category:
    """Return the category of a top-level form."""
    tag = form.tag
    if tag == "import" or has_inline_import(form):
        return Category.IMPORT
    if tag in DECLARATION_TAGS:
        return Category.DECLARATION
    if tag in SEGMENT_TAGS:
        return Category.SEGMENT
    if tag == "func":
        return Category.FUNCTION
    if tag == "export":
        return Category.EXPORT
    if tag == "start":
        return Category.START
    return Category.OTHER


def sort_forms(module: SExpr, ctx: PassContext) -> None:
    """Stably sort the module's top-level forms by category.

    Atoms among the module's children (the `module` tag and an optional
    module name) are kept in front, in input order.
    """
    expect_module(module, "sort")
    atoms: list[Node] = [item for item in module.items if isinstance(item, Atom)]
    forms = sorted(module.forms(), key=categorize)
    module.items = [*atoms, *forms]


__all__ = ["Category", "categorize", "has_inline_import", "index_space", "sort_forms"]
