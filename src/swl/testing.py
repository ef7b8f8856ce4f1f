"""Testing utilities for swl."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable, Sequence

from swl.encoder import encode
from swl.loader import MemoryLoader
from swl.pipeline import Pipeline


def link_sources(sources: Sequence[str], passes: str | Iterable[str]) -> str:
    """Link a set of in-memory files and return the serialized result.

    The files are named "0", "1", ... in order; file "0" is the entry point
    and the others can be imported by those names.

    Args:
        sources: Module sources.
        passes: Pass selection.

    Returns:
        The serialized output for file "0".
    """
    loader = MemoryLoader({str(idx): text for idx, text in enumerate(sources)})
    pipeline = Pipeline(passes, loader)
    return pipeline.run(loader.resolve("0"), origin="0")


def check_wat_valid(wat_code: str, encoder: str = "wat2wasm") -> tuple[bool, str]:
    """Check if WAT code is valid by trying to encode it.

    Args:
        wat_code: WebAssembly Text format code.
        encoder: Encoder name.

    Returns:
        Tuple of (valid, error_message).
    """
    try:
        encode(wat_code, encoder)
        return True, ""
    except subprocess.CalledProcessError as e:
        return False, e.stderr
