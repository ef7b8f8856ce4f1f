"""Project configuration loaded from `swl.yaml`.

Example::

    transforms: [import, size_adjust, start_merge, sort]
    root: src
    emit_binary: true
    encoder: wat2wasm
    encoder_flags: ["--enable-threads"]

Command-line flags override values from the file.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from swl.encoder import ENCODERS
from swl.errors import ConfigError
from swl.pipeline import DEFAULT_PASSES, parse_pass_names

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "swl.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class SwlConfig:
    """Settings for a preprocessing run.

    Attributes:
        transforms: Enabled passes, in pipeline order.
        root: Directory import paths are resolved against.
        emit_binary: Hand the output to the encoder and write the binary.
        encoder: Encoder name, one of `ENCODERS`.
        encoder_flags: Extra arguments for the encoder.
        pretty: Write indented output instead of a single line.
        log_level: Logging level name.
    """

    transforms: tuple[str, ...] = DEFAULT_PASSES
    root: Path | None = None
    emit_binary: bool = False
    encoder: str = "wat2wasm"
    encoder_flags: list[str] = field(default_factory=list)
    pretty: bool = False
    log_level: str = "WARNING"


def find_config(directory: Path | None = None) -> Path | None:
    """Return the `swl.yaml` in `directory` (default: cwd), if there is one."""
    candidate = (directory or Path.cwd()) / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def load_config(config_path: Path) -> SwlConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file. A relative `root` inside it is
            resolved against the file's directory.

    Returns:
        The parsed configuration.

    Raises:
        ConfigError: If the file cannot be read or has invalid values.
        UnknownPassRequestedError: If `transforms` names an unknown pass.
    """
    config_path = Path(config_path)
    try:
        with config_path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        msg = f"Cannot read configuration {config_path}: {e}"
        raise ConfigError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {config_path}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"{config_path}: expected a mapping at the top level"
        raise ConfigError(msg)
    return config_from_dict(data, config_path.parent)


def config_from_dict(data: dict[str, Any], base_path: Path) -> SwlConfig:
    """Build an `SwlConfig` from already-parsed YAML data."""
    known = set(SwlConfig.__dataclass_fields__)
    for key in data:
        if key not in known:
            logger.warning("Ignoring unknown configuration key %r", key)

    config = SwlConfig()

    if "transforms" in data:
        transforms = data["transforms"]
        if not isinstance(transforms, str | list):
            msg = "transforms must be a list or a comma-separated string"
            raise ConfigError(msg)
        config.transforms = parse_pass_names(transforms)

    if data.get("root") is not None:
        config.root = base_path / str(data["root"])

    for key in ("emit_binary", "pretty"):
        if key in data:
            if not isinstance(data[key], bool):
                msg = f"{key} must be true or false"
                raise ConfigError(msg)
            setattr(config, key, data[key])

    if "encoder" in data:
        if data["encoder"] not in ENCODERS:
            msg = f"encoder must be one of {', '.join(ENCODERS)}"
            raise ConfigError(msg)
        config.encoder = data["encoder"]

    flags = data.get("encoder_flags")
    if isinstance(flags, str):
        config.encoder_flags = shlex.split(flags)
    elif isinstance(flags, list):
        config.encoder_flags = [str(flag) for flag in flags]
    elif flags is not None:
        msg = "encoder_flags must be a list or a string"
        raise ConfigError(msg)

    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in LOG_LEVELS:
            msg = f"log_level must be one of {', '.join(LOG_LEVELS)}"
            raise ConfigError(msg)
        config.log_level = level

    return config


__all__ = [
    "CONFIG_FILENAME",
    "SwlConfig",
    "config_from_dict",
    "find_config",
    "load_config",
]
