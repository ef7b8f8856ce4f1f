"""Integration tests for the command-line interface."""

from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

from swl.cli import main


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "lib.wat").write_text('(module (import "env" "log" (func $log)))')
    (tmp_path / "main.wat").write_text(
        '(module\n  (func $main)\n  (import "lib.wat" (file))\n)\n'
    )
    return tmp_path


class TestCli:
    def test_links_file_to_stdout(
        self, workdir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["main.wat"]) == 0
        out = capsys.readouterr().out
        assert out == '(module (import "env" "log" (func $log)) (func $main))\n'

    def test_output_file(self, workdir: Path) -> None:
        assert main(["main.wat", "-o", "out.wat"]) == 0
        assert (workdir / "out.wat").read_text().startswith("(module (import")

    def test_stdin(
        self,
        workdir: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr(sys, "stdin", io.StringIO('(module (import "lib.wat" (file)))'))
        assert main([]) == 0
        assert capsys.readouterr().out == '(module (import "env" "log" (func $log)))\n'

    def test_transform_selection(
        self, workdir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["main.wat", "--transform", "sort"]) == 0
        out = capsys.readouterr().out
        assert out == '(module (import "lib.wat" (file)) (func $main))\n'

    def test_pretty(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["main.wat", "--pretty"]) == 0
        assert capsys.readouterr().out == (
            '(module\n  (import "env" "log" (func $log))\n  (func $main))\n'
        )

    def test_root_option(
        self,
        workdir: Path,
        tmp_path_factory: pytest.TempPathFactory,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        other = tmp_path_factory.mktemp("other")
        (other / "lib.wat").write_text("(module (func $other))")
        assert main(["main.wat", "-r", str(other)]) == 0
        assert capsys.readouterr().out == "(module (func $main) (func $other))\n"

    def test_config_file(
        self, workdir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (workdir / "swl.yaml").write_text("transforms: [sort]\npretty: false\n")
        assert main(["main.wat"]) == 0
        assert capsys.readouterr().out.startswith('(module (import "lib.wat" (file))')


class TestCliErrors:
    def test_unknown_transform(
        self, workdir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["main.wat", "--transform", "import, bogus"]) == 1
        assert "error: Unknown pass name 'bogus'" in capsys.readouterr().err

    def test_self_import(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (workdir / "loop.wat").write_text('(module (import "loop.wat" (file)))')
        assert main(["loop.wat"]) == 1
        assert "Cyclic import: loop.wat -> loop.wat" in capsys.readouterr().err

    def test_missing_input(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["nope.wat"]) == 1
        assert "error: cannot read nope.wat" in capsys.readouterr().err

    def test_parse_error(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (workdir / "bad.wat").write_text("(module (func")
        assert main(["bad.wat"]) == 1
        err = capsys.readouterr().err
        assert "bad.wat:1:9: Unterminated list" in err

    def test_no_output_on_error(self, workdir: Path) -> None:
        (workdir / "broken.wat").write_text('(module (import "missing.wat" (file)))')
        assert main(["broken.wat", "-o", "out.wat"]) == 1
        assert not (workdir / "out.wat").exists()

    def test_encoder_flags_need_emit_binary(self, workdir: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["main.wat", "--wat2wasm-flags=--enable-threads"])
        assert exc_info.value.code == 2
