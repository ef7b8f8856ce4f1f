"""Source loaders: how an import path becomes source text.

The core only talks to the `Loader` protocol. `FileSystemLoader` is what
the CLI uses; `MemoryLoader` serves tests and embedders.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from swl.errors import ImportNotFoundError

logger = logging.getLogger(__name__)


class Loader(Protocol):
    """Supplies source text and raw bytes for import paths."""

    def resolve(self, path: str) -> str:
        """Return the source text for `path`.

        Raises:
            ImportNotFoundError: If there is no such source.
        """
        ...

    def load_raw(self, path: str) -> bytes:
        """Return the raw bytes for `path`.

        Raises:
            ImportNotFoundError: If there is no such source.
        """
        ...


class FileSystemLoader:
    """Load files relative to a root directory.

    Contents are cached by path, so a file imported from several places is
    read once.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root) if root is not None else Path.cwd()
        self._cache: dict[str, bytes] = {}

    def path_for(self, path: str) -> Path:
        return self.root / path

    def load_raw(self, path: str) -> bytes:
        if path not in self._cache:
            file_path = self.path_for(path)
            logger.debug("Reading %s", file_path)
            try:
                self._cache[path] = file_path.read_bytes()
            except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
                raise ImportNotFoundError(path) from e
        return self._cache[path]

    def resolve(self, path: str) -> str:
        return self.load_raw(path).decode("utf-8")


class MemoryLoader:
    """Serve sources from an in-memory mapping of path to text or bytes."""

    def __init__(self, files: Mapping[str, str | bytes] | None = None) -> None:
        self.files: dict[str, str | bytes] = dict(files or {})

    def load_raw(self, path: str) -> bytes:
        try:
            content = self.files[path]
        except KeyError:
            raise ImportNotFoundError(path) from None
        return content.encode("utf-8") if isinstance(content, str) else content

    def resolve(self, path: str) -> str:
        return self.load_raw(path).decode("utf-8")


class NullLoader:
    """A loader with no sources at all."""

    def load_raw(self, path: str) -> bytes:
        raise ImportNotFoundError(path)

    def resolve(self, path: str) -> str:
        raise ImportNotFoundError(path)


__all__ = ["FileSystemLoader", "Loader", "MemoryLoader", "NullLoader"]
