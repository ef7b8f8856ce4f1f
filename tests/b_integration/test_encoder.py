"""Integration tests for the encoder handoff.

Tests that run an encoder are skipped when it is not installed.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from swl.cli import main
from swl.encoder import encode, encoder_command, has_encoder
from swl.testing import check_wat_valid, link_sources


class TestEncoderCommand:
    def test_wat2wasm(self) -> None:
        command = encoder_command("wat2wasm", Path("in.wat"), Path("out.wasm"), ["-v"])
        assert command == ["wat2wasm", "in.wat", "-o", "out.wasm", "-v"]

    def test_wasm_tools(self) -> None:
        command = encoder_command("wasm-tools", Path("in.wat"), Path("out.wasm"))
        assert command == ["wasm-tools", "parse", "in.wat", "-o", "out.wasm"]

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown encoder"):
            encoder_command("wabt", Path("a"), Path("b"))


@pytest.mark.skipif(not has_encoder(), reason="wat2wasm not installed")
class TestWat2Wasm:
    def test_encode(self) -> None:
        assert encode("(module)").startswith(b"\x00asm")

    def test_linked_output_is_valid(self) -> None:
        wat = link_sources(
            [
                '(module (func $main) (start $main) (import "1" (file))'
                ' (data (i32.const 65536) "x"))',
                '(module (memory 0) (func $init) (start $init) (import "env" "f" (func $f)))',
            ],
            "import, size_adjust, start_merge, sort",
        )
        valid, error = check_wat_valid(wat)
        assert valid, error

    def test_invalid_module(self) -> None:
        valid, error = check_wat_valid("(module (func (call $missing)))")
        assert not valid
        assert error

    def test_cli_emit_binary(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "main.wat").write_text("(module (func $f) (start $f))")
        assert main(["main.wat", "-c", "-o", "main.wasm"]) == 0
        assert (tmp_path / "main.wasm").read_bytes().startswith(b"\x00asm")


@pytest.mark.skipif(not has_encoder("wasm-tools"), reason="wasm-tools not installed")
def test_wasm_tools_encode() -> None:
    assert encode("(module)", "wasm-tools").startswith(b"\x00asm")
