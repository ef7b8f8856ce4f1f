"""Pipeline orchestration: parse, run the enabled passes, serialize.

The pipeline is fail-fast. The first error from any pass propagates and no
output is produced.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from swl.context import PassContext
from swl.errors import UnknownPassRequestedError
from swl.loader import Loader, NullLoader
from swl.parser import parse
from swl.passes import PASS_ORDER, PASSES
from swl.serializer import serialize
from swl.tree import Node

logger = logging.getLogger(__name__)

DEFAULT_PASSES: tuple[str, ...] = ("import", "sort")


def parse_pass_names(passes: str | Iterable[str]) -> tuple[str, ...]:
    """Normalize a pass selection to a tuple in pipeline order.

    Args:
        passes: Comma-separated names (`"import, sort"`) or an iterable of
            names. Order and duplicates do not matter.

    Returns:
        The selected pass names, ordered as in `PASS_ORDER`.

    Raises:
        UnknownPassRequestedError: For a name that is not a known pass.
    """
    names = passes.split(",") if isinstance(passes, str) else passes
    requested: set[str] = set()
    for raw in names:
        name = raw.strip()
        if not name:
            continue
        if name not in PASSES:
            raise UnknownPassRequestedError(name, PASS_ORDER)
        requested.add(name)
    return tuple(name for name in PASS_ORDER if name in requested)


class Pipeline:
    """Runs a fixed-order selection of passes over modules.

    Args:
        passes: Pass selection, see `parse_pass_names`.
        loader: Resolves import paths. Defaults to a loader with no files.
    """

    def __init__(
        self,
        passes: str | Iterable[str] = DEFAULT_PASSES,
        loader: Loader | None = None,
    ) -> None:
        self.passes = parse_pass_names(passes)
        self.loader: Loader = loader if loader is not None else NullLoader()

    def link(self, module: Node, origin: str | None = None) -> Node:
        """Run the enabled passes over a parsed tree, in place.

        With no passes enabled any root is returned unchanged; each pass
        raises NotAModuleError for a root that is not a `(module ...)` form.
        """
        ctx = PassContext(loader=self.loader, origin=origin)
        for name in self.passes:
            logger.debug("Running pass %s", name)
            PASSES[name](module, ctx)
        return module

    def link_source(self, text: str, origin: str | None = None) -> Node:
        """Parse `text` and run the enabled passes over it."""
        return self.link(parse(text, source=origin), origin)

    def link_file(self, path: str) -> Node:
        """Load `path` through the loader and run the enabled passes over it."""
        return self.link_source(self.loader.resolve(path), origin=path)

    def run(self, text: str, origin: str | None = None) -> str:
        """Transform source text into output text."""
        return serialize(self.link_source(text, origin))


def run(
    source: str,
    enabled_passes: str | Iterable[str] = DEFAULT_PASSES,
    loader: Loader | None = None,
    origin: str | None = None,
) -> str:
    """Transform `source` with the enabled passes and return the new text.

    Args:
        source: Module source text.
        enabled_passes: Pass selection; always applied in `PASS_ORDER`.
        loader: Resolves import paths.
        origin: Loader path of `source`, if it has one.

    Returns:
        The serialized, transformed module.

    Raises:
        SwlError: On the first error from parsing or any pass.
    """
    return Pipeline(enabled_passes, loader).run(source, origin)


__all__ = ["DEFAULT_PASSES", "Pipeline", "parse_pass_names", "run"]
