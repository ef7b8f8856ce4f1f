"""Merge several `(start ...)` entries into one.

A module may only have one start function. When imports bring in more
than one, they are replaced by a generated function that calls each of
them in the order they appeared, and a single start entry pointing at it.
"""

from __future__ import annotations

import logging
from itertools import count

from swl.context import PassContext, expect_module
from swl.errors import DuplicateSynthesizedIdentifierError, MalformedFormError
from swl.serializer import serialize
from swl.tree import Atom, Node, SExpr

logger = logging.getLogger(__name__)

START_FUNC_PREFIX = "$_swl_start_merger"

# Probing is deterministic; this only bounds pathological inputs
MAX_PROBES = 10_000


def start_target(node: SExpr) -> str:
    """Return the function reference of a `(start X)` form."""
    if len(node.items) != 2 or not isinstance(node.items[1], Atom):
        msg = "Start entry must name exactly one function"
        raise MalformedFormError(msg, serialize(node))
    return node.items[1].text


def collect_identifiers(module: SExpr) -> set[str]:
    """Return every `$identifier` atom used anywhere in the module."""
    return {atom.text for atom in module.walk_atoms() if atom.is_identifier}


def fresh_identifier(taken: set[str], prefix: str = START_FUNC_PREFIX) -> str:
    """Return `prefix`, or `prefix_N` for the smallest N not in `taken`."""
    if prefix not in taken:
        return prefix
    for suffix in count(1):
        if suffix > MAX_PROBES:
            break
        candidate = f"{prefix}_{suffix}"
        if candidate not in taken:
            return candidate
    raise DuplicateSynthesizedIdentifierError(prefix)


def build_start_function(identifier: str, targets: list[str]) -> SExpr:
    """Build `(func <identifier> (call t1) (call t2) ...)`."""
    return SExpr.of("func", identifier, *(SExpr.of("call", target) for target in targets))


def merge_start_entries(module: SExpr, ctx: PassContext) -> None:
    """Replace two or more start entries with a single synthesized one."""
    expect_module(module, "start_merge")
    starts = [form for form in module.forms() if form.has_tag("start")]
    if len(starts) <= 1:
        return

    targets = [start_target(form) for form in starts]
    taken = collect_identifiers(module)
    identifier = fresh_identifier(taken)
    if identifier in taken:
        raise DuplicateSynthesizedIdentifierError(identifier)

    logger.debug("Merging %d start entries into %s", len(targets), identifier)
    items: list[Node] = [
        item
        for item in module.items
        if not (isinstance(item, SExpr) and item.has_tag("start"))
    ]
    items.append(build_start_function(identifier, targets))
    items.append(SExpr.of("start", identifier))
    module.items = items


__all__ = [
    "START_FUNC_PREFIX",
    "build_start_function",
    "collect_identifiers",
    "fresh_identifier",
    "merge_start_entries",
    "start_target",
]
