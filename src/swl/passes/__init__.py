"""Structural passes over a parsed module.

Each pass takes the module and the shared `PassContext` and rewrites the
module in place. `PASSES` lists them in the order the pipeline runs them,
whatever order they were requested in.
"""

from __future__ import annotations

from collections.abc import Callable

from swl.context import PassContext
from swl.passes.constexpr import fold_constexprs
from swl.passes.data_import import import_data
from swl.passes.importer import import_files
from swl.passes.numerals import rewrite_numerals
from swl.passes.size_adjust import adjust_memory_sizes
from swl.passes.sorter import sort_forms
from swl.passes.start_merge import merge_start_entries
from swl.tree import SExpr

Pass = Callable[[SExpr, PassContext], None]

# Order matters: imports first so later passes see imported forms, the
# literal rewrites before size_adjust reads offsets and payloads, and sort
# last so synthesized forms land in their category.
PASSES: dict[str, Pass] = {
    "import": import_files,
    "data_import": import_data,
    "numerals": rewrite_numerals,
    "constexpr": fold_constexprs,
    "size_adjust": adjust_memory_sizes,
    "start_merge": merge_start_entries,
    "sort": sort_forms,
}

PASS_ORDER: tuple[str, ...] = tuple(PASSES)

__all__ = ["PASSES", "PASS_ORDER", "Pass"]
