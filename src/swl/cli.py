"""Command-line interface.

Provides the `swl` command: read a module (file or stdin), run the
selected passes and write the text, or a Wasm binary when `--emit-binary`
is given.
"""

from __future__ import annotations

import argparse
import logging
import shlex
import subprocess
import sys
from pathlib import Path

from swl.config import SwlConfig, find_config, load_config
from swl.encoder import ENCODERS, encode
from swl.errors import SwlError
from swl.loader import FileSystemLoader
from swl.passes import PASS_ORDER
from swl.pipeline import Pipeline, parse_pass_names
from swl.serializer import pretty_print, serialize
from swl.tree import Node

logger = logging.getLogger("swl")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="swl",
        description="Preprocess WebAssembly text: file imports, memory sizing, "
        "start merging and form sorting",
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help='Path to input file, "-" means stdin (default: -)',
    )
    parser.add_argument(
        "-o",
        "--output",
        default="-",
        help='Path to output file, "-" means stdout (default: -)',
    )
    parser.add_argument(
        "-c",
        "--emit-binary",
        action="store_true",
        default=None,
        help="Invoke the encoder to compile straight to Wasm",
    )
    parser.add_argument(
        "--encoder",
        choices=sorted(ENCODERS),
        help="Encoder used with --emit-binary (default: wat2wasm)",
    )
    parser.add_argument(
        "--wat2wasm-flags",
        "--encoder-flags",
        dest="encoder_flags",
        metavar="FLAGS",
        help="Additional flags to pass to the encoder",
    )
    parser.add_argument(
        "--transform",
        metavar="TRANSFORMS",
        help=f"Comma-separated list of passes from: {', '.join(PASS_ORDER)} "
        "(default: import, sort)",
    )
    parser.add_argument(
        "-r",
        "--root",
        help="Root for import path resolution (default: current directory)",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        default=None,
        help="Write indented output",
    )
    parser.add_argument(
        "--config",
        help="Path to a swl.yaml configuration (default: ./swl.yaml if present)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log each pass and import to stderr",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> SwlConfig:
    """Load the configuration file, then apply command-line overrides."""
    config_path = Path(args.config) if args.config else find_config()
    config = load_config(config_path) if config_path else SwlConfig()

    if args.transform is not None:
        config.transforms = parse_pass_names(args.transform)
    if args.root is not None:
        config.root = Path(args.root)
    if args.emit_binary is not None:
        config.emit_binary = args.emit_binary
    if args.encoder is not None:
        config.encoder = args.encoder
    if args.encoder_flags is not None:
        config.encoder_flags = shlex.split(args.encoder_flags)
    if args.pretty is not None:
        config.pretty = args.pretty
    if args.verbose:
        config.log_level = "DEBUG"
    return config


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def link_input(pipeline: Pipeline, input_name: str, root: Path) -> Node:
    """Read the input module and run the pipeline over it.

    A file inside the import root is linked under its root-relative path, so
    a file that imports itself is caught on the first hop.
    """
    if input_name == "-":
        return pipeline.link_source(sys.stdin.read())
    path = Path(input_name).resolve()
    text = path.read_text(encoding="utf-8")
    try:
        origin = path.relative_to(root.resolve()).as_posix()
    except ValueError:
        origin = str(path)
    return pipeline.link_source(text, origin=origin)


def write_output(output: str, data: str | bytes) -> None:
    if output == "-":
        if isinstance(data, bytes):
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        else:
            sys.stdout.write(data)
        return
    path = Path(output)
    if isinstance(data, bytes):
        path.write_bytes(data)
    else:
        path.write_text(data, encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args)
    except SwlError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    configure_logging(config.log_level)

    if config.encoder_flags and not config.emit_binary:
        parser.error("encoder flags require --emit-binary")

    root = config.root or Path.cwd()
    pipeline = Pipeline(config.transforms, FileSystemLoader(root))
    logger.debug("Passes: %s", ", ".join(pipeline.passes) or "(none)")

    try:
        module = link_input(pipeline, args.input, root)
    except SwlError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: cannot read {args.input}: {e.strerror or e}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"error: {args.input} is not valid UTF-8: {e.reason}", file=sys.stderr)
        return 1

    text = serialize(module)
    if config.emit_binary:
        try:
            data: str | bytes = encode(text, config.encoder, config.encoder_flags)
        except FileNotFoundError:
            print(f"error: encoder {config.encoder} is not installed", file=sys.stderr)
            return 1
        except subprocess.CalledProcessError as e:
            print(f"error: {config.encoder} failed:\n{e.stderr}", file=sys.stderr)
            return 1
    elif config.pretty:
        data = pretty_print(module)
    else:
        data = text + "\n"

    write_output(args.output, data)
    return 0


if __name__ == "__main__":
    sys.exit(main())
