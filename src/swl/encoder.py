"""Encoder handoff: turn the preprocessed text into a Wasm binary.

The text is passed to an external tool, either `wat2wasm` (WABT) or
`wasm-tools parse`.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

# Encoder name -> argv template; {input} and {output} are file paths
ENCODERS: dict[str, tuple[str, ...]] = {
    "wat2wasm": ("wat2wasm", "{input}", "-o", "{output}"),
    "wasm-tools": ("wasm-tools", "parse", "{input}", "-o", "{output}"),
}


def encoder_command(
    encoder: str, input_path: Path, output_path: Path, flags: Sequence[str] = ()
) -> list[str]:
    """Build the argv for running `encoder` on `input_path`."""
    try:
        template = ENCODERS[encoder]
    except KeyError:
        msg = f"Unknown encoder {encoder!r}"
        raise ValueError(msg) from None
    command = [
        part.format(input=input_path, output=output_path) for part in template
    ]
    return [*command, *flags]


def encode(wat_code: str, encoder: str = "wat2wasm", flags: Sequence[str] = ()) -> bytes:
    """Convert WAT to a Wasm binary with an external encoder.

    Args:
        wat_code: WebAssembly Text format code.
        encoder: Encoder name, one of `ENCODERS`.
        flags: Extra command-line flags for the encoder.

    Returns:
        WASM binary bytes.

    Raises:
        subprocess.CalledProcessError: If the encoder fails.
        FileNotFoundError: If the encoder is not installed.
    """
    with tempfile.NamedTemporaryFile(mode="w", suffix=".wat", delete=False) as wat_file:
        wat_file.write(wat_code)
        wat_path = Path(wat_file.name)

    wasm_path = wat_path.with_suffix(".wasm")

    try:
        command = encoder_command(encoder, wat_path, wasm_path, flags)
        logger.debug("Running %s", " ".join(command))
        subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
        )
        return wasm_path.read_bytes()
    finally:
        wat_path.unlink(missing_ok=True)
        wasm_path.unlink(missing_ok=True)


def has_encoder(encoder: str = "wat2wasm") -> bool:
    """Check if the encoder binary is available."""
    try:
        subprocess.run(
            [ENCODERS[encoder][0], "--version"],
            check=True,
            capture_output=True,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


__all__ = ["ENCODERS", "encode", "encoder_command", "has_encoder"]
