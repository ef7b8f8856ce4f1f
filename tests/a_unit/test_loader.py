"""Unit tests for source loaders."""

from __future__ import annotations

from pathlib import Path

import pytest

from swl.errors import ImportNotFoundError
from swl.loader import FileSystemLoader, MemoryLoader, NullLoader


class TestFileSystemLoader:
    def test_resolves_relative_to_root(self, tmp_path: Path) -> None:
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "a.wat").write_text("(module)")
        loader = FileSystemLoader(tmp_path)
        assert loader.resolve("lib/a.wat") == "(module)"
        assert loader.load_raw("lib/a.wat") == b"(module)"

    def test_contents_are_cached(self, tmp_path: Path) -> None:
        path = tmp_path / "a.wat"
        path.write_text("(module)")
        loader = FileSystemLoader(tmp_path)
        loader.resolve("a.wat")
        path.write_text("(module (func))")
        assert loader.resolve("a.wat") == "(module)"

    def test_missing(self, tmp_path: Path) -> None:
        loader = FileSystemLoader(tmp_path)
        with pytest.raises(ImportNotFoundError):
            loader.resolve("nope.wat")

    def test_directory(self, tmp_path: Path) -> None:
        (tmp_path / "dir").mkdir()
        with pytest.raises(ImportNotFoundError):
            FileSystemLoader(tmp_path).resolve("dir")


class TestMemoryLoader:
    def test_text_and_bytes(self) -> None:
        loader = MemoryLoader({"a": "(module)", "b": b"\x00\x01"})
        assert loader.resolve("a") == "(module)"
        assert loader.load_raw("a") == b"(module)"
        assert loader.load_raw("b") == b"\x00\x01"

    def test_missing(self) -> None:
        with pytest.raises(ImportNotFoundError) as exc_info:
            MemoryLoader().resolve("x")
        assert exc_info.value.path == "x"


def test_null_loader() -> None:
    with pytest.raises(ImportNotFoundError):
        NullLoader().load_raw("anything")
