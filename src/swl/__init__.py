"""swl: a preprocessor for the WebAssembly text format."""

from __future__ import annotations

from swl.errors import SwlError
from swl.loader import FileSystemLoader, Loader, MemoryLoader
from swl.parser import parse
from swl.pipeline import DEFAULT_PASSES, Pipeline, run
from swl.serializer import pretty_print, serialize
from swl.tree import Atom, Node, SExpr

__all__ = [
    "DEFAULT_PASSES",
    "Atom",
    "FileSystemLoader",
    "Loader",
    "MemoryLoader",
    "Node",
    "Pipeline",
    "SExpr",
    "SwlError",
    "parse",
    "pretty_print",
    "run",
    "serialize",
]
