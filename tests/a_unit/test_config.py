"""Unit tests for configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from swl.config import SwlConfig, config_from_dict, find_config, load_config
from swl.errors import ConfigError, UnknownPassRequestedError
from swl.pipeline import DEFAULT_PASSES


def write_config(directory: Path, text: str) -> Path:
    path = directory / "swl.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_full(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            "transforms: [sort, import, size_adjust]\n"
            "root: src\n"
            "emit_binary: true\n"
            "encoder: wasm-tools\n"
            "encoder_flags: ['--features', 'all']\n"
            "pretty: true\n"
            "log_level: info\n",
        )
        config = load_config(path)
        assert config.transforms == ("import", "size_adjust", "sort")
        assert config.root == tmp_path / "src"
        assert config.emit_binary is True
        assert config.encoder == "wasm-tools"
        assert config.encoder_flags == ["--features", "all"]
        assert config.pretty is True
        assert config.log_level == "INFO"

    def test_empty_file(self, tmp_path: Path) -> None:
        config = load_config(write_config(tmp_path, ""))
        assert config == SwlConfig()
        assert config.transforms == DEFAULT_PASSES

    def test_string_values(self, tmp_path: Path) -> None:
        config = load_config(
            write_config(
                tmp_path,
                "transforms: import, start_merge\nencoder_flags: --enable-threads -v\n",
            )
        )
        assert config.transforms == ("import", "start_merge")
        assert config.encoder_flags == ["--enable-threads", "-v"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "swl.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(write_config(tmp_path, "transforms: [import\n"))

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(write_config(tmp_path, "- import\n"))


class TestConfigFromDict:
    @pytest.mark.parametrize(
        "data",
        [
            {"transforms": 3},
            {"emit_binary": "yes"},
            {"encoder": "wabt"},
            {"encoder_flags": 3},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            config_from_dict(data, Path())

    def test_unknown_pass(self) -> None:
        with pytest.raises(UnknownPassRequestedError):
            config_from_dict({"transforms": ["bogus"]}, Path())

    def test_unknown_key_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="swl"):
            config_from_dict({"colour": "blue"}, Path())
        assert "colour" in caplog.text


class TestFindConfig:
    def test_found(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "")
        assert find_config(tmp_path) == path

    def test_absent(self, tmp_path: Path) -> None:
        assert find_config(tmp_path) is None
