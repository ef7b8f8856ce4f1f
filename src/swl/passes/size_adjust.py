"""Memory size inference from data segments.

For every memory targeted by active data segments, the declared minimum
size is raised to the number of pages needed to hold the furthest byte any
segment writes. Passive segments (no memory use, no offset) have no fixed
address and do not count; a memory use without an offset writes at 0.
The minimum is only ever raised; memories without active segments are left
alone.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from swl.context import PassContext, expect_module
from swl.errors import DanglingDataTargetError, MalformedFormError, MemoryLimitError
from swl.passes.sorter import index_space
from swl.serializer import serialize
from swl.tree import (
    Atom,
    SExpr,
    is_int_literal,
    parse_int_literal,
    string_byte_length,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 64 * 1024

_OFFSET_MASKS = {"i32.const": 0xFFFF_FFFF, "i64.const": 0xFFFF_FFFF_FFFF_FFFF}


@dataclass
class Memory:
    """A memory declaration.

    Attributes:
        index: Position in the module's memory index space.
        name: `$identifier`, if the declaration has one.
        form: The `(memory ...)` list holding the limits. For imported
            memories this is the list nested inside the import.
    """

    index: int
    name: str | None
    form: SExpr

    @property
    def label(self) -> str:
        return self.name or str(self.index)

    def limit_positions(self) -> list[int]:
        """Indices into `form.items` of the numeric limits (min, max)."""
        return [
            idx
            for idx, item in enumerate(self.form.items[1:], start=1)
            if isinstance(item, Atom) and is_int_literal(item.text)
        ]


@dataclass
class DataSegment:
    """An active data segment and the byte range it writes.

    `offset` is None when the offset expression is not a constant.
    """

    form: SExpr
    memory: str
    offset: int | None
    size: int

    @property
    def end(self) -> int:
        return (self.offset or 0) + self.size


def pages_for(extent: int) -> int:
    """Minimum number of pages covering `extent` bytes."""
    return -(-extent // PAGE_SIZE)


def collect_memories(module: SExpr) -> list[Memory]:
    """Find memory declarations in index order, imported memories first."""
    memories: list[Memory] = []
    for index, (decl, _) in enumerate(index_space(module, "memory")):
        name = None
        if len(decl.items) > 1 and isinstance(decl.items[1], Atom):
            if decl.items[1].is_identifier:
                name = decl.items[1].text
        memories.append(Memory(index, name, decl))
    return memories


def constant_offset(expr: SExpr) -> int | None:
    """Evaluate an offset expression, or return None if it is not constant.

    Accepts `(offset (i32.const N))`, `(offset i32.const N)` and the
    abbreviated `(i32.const N)`, plus the i64 forms for 64-bit memories.
    """
    if expr.has_tag("offset"):
        body = expr.items[1:]
        if len(body) == 1 and isinstance(body[0], SExpr):
            return constant_offset(body[0])
        instr = body
    else:
        instr = expr.items
    if len(instr) != 2 or not all(isinstance(item, Atom) for item in instr):
        return None
    op, value = instr
    assert isinstance(op, Atom)
    assert isinstance(value, Atom)
    if op.text not in _OFFSET_MASKS or not is_int_literal(value.text):
        return None
    return parse_int_literal(value.text) & _OFFSET_MASKS[op.text]


def active_segments(module: SExpr) -> Iterator[DataSegment]:
    """Yield the active data segments of `module`."""
    for form in module.forms():
        if not form.has_tag("data"):
            continue
        memory_use = form.find("memory")
        offset_expr = form.find("offset")
        if offset_expr is None:
            # Abbreviated form: the offset is the first other list
            offset_expr = next(
                (f for f in form.forms() if not f.has_tag("memory", "import")),
                None,
            )
        if offset_expr is None and memory_use is None:
            continue

        memory = "0"
        if memory_use is not None:
            if len(memory_use.items) != 2 or not isinstance(memory_use.items[1], Atom):
                msg = "Malformed memory reference in data segment"
                raise MalformedFormError(msg, serialize(form))
            memory = memory_use.items[1].text

        try:
            size = sum(
                string_byte_length(atom.unquoted())
                for atom in form.atoms()
                if atom.is_string
            )
        except ValueError as e:
            raise MalformedFormError(str(e), serialize(form)) from e

        # A memory use without an offset writes at address 0
        offset = 0 if offset_expr is None else constant_offset(offset_expr)
        yield DataSegment(form, memory, offset, size)


def _lookup(memories: list[Memory], reference: str) -> Memory:
    if reference.startswith("$"):
        for memory in memories:
            if memory.name == reference:
                return memory
    elif is_int_literal(reference):
        index = parse_int_literal(reference)
        if 0 <= index < len(memories):
            return memories[index]
    raise DanglingDataTargetError(reference)


def adjust_memory_sizes(module: SExpr, ctx: PassContext) -> None:
    """Raise declared memory minimums to fit all active data segments."""
    expect_module(module, "size_adjust")
    memories = collect_memories(module)

    extents: dict[int, int] = {}
    for segment in active_segments(module):
        memory = _lookup(memories, segment.memory)
        if segment.offset is None:
            logger.warning(
                "Skipping data segment with non-constant offset: %s",
                serialize(segment.form),
            )
            continue
        extents[memory.index] = max(extents.get(memory.index, 0), segment.end)

    for index, extent in sorted(extents.items()):
        grow_memory(memories[index], pages_for(extent))


def grow_memory(memory: Memory, pages: int) -> None:
    """Set the memory's minimum to `pages` unless it is already larger.

    Raises:
        MemoryLimitError: If `pages` exceeds the declared maximum.
    """
    form = memory.form
    if form.find("data") is not None:
        logger.debug("Memory %s has inline data, leaving it alone", memory.label)
        return

    positions = memory.limit_positions()
    if not positions:
        insert_at = next(
            (
                idx
                for idx, item in enumerate(form.items)
                if isinstance(item, Atom) and item.text == "shared"
            ),
            len(form.items),
        )
        form.items.insert(insert_at, Atom(str(pages)))
        logger.debug("Memory %s: minimum set to %d pages", memory.label, pages)
        return

    minimum_atom = form.items[positions[0]]
    assert isinstance(minimum_atom, Atom)
    current = parse_int_literal(minimum_atom.text)
    if pages <= current:
        return
    if len(positions) > 1:
        maximum_atom = form.items[positions[1]]
        assert isinstance(maximum_atom, Atom)
        maximum = parse_int_literal(maximum_atom.text)
        if pages > maximum:
            raise MemoryLimitError(memory.label, pages, maximum)
    form.items[positions[0]] = Atom(str(pages))
    logger.debug("Memory %s: minimum raised %d -> %d pages", memory.label, current, pages)


__all__ = [
    "PAGE_SIZE",
    "DataSegment",
    "Memory",
    "active_segments",
    "adjust_memory_sizes",
    "collect_memories",
    "constant_offset",
    "grow_memory",
    "pages_for",
]
