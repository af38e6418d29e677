#!/usr/bin/env python3
"""
tfc

Text file converter: rewrites the leading indentation (spaces or tabs) and
the line endings (DOS or Unix) of text files, or summarizes both.
"""

import argparse
import logging
import os
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from tqdm import tqdm

import filebuffer
from textconv import (
    DEFAULT_TAB_WIDTH,
    TAB_WIDTHS,
    ConversionConfig,
    FileSummary,
    IndentTarget,
    LineEnding,
    convert_buffer,
)

__version__ = "1.0.0"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
logger = logging.getLogger("tfc")


class TfcError(Exception):
    """A condition that ends the current tfc run."""


class ArgumentError(TfcError):
    """Options that parse but cannot be used together."""


class PathError(TfcError):
    """Missing input, clashing input and output, or a binary file to replace."""


class Mode(str, Enum):
    SUMMARY = "summary"
    CONVERT = "convert"
    REPLACE = "replace"


@dataclass(frozen=True)
class Invocation:
    """Validated command line: what to do and on which files."""

    mode: Mode
    config: ConversionConfig
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    replace_paths: Tuple[str, ...] = ()


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Log to stderr, and optionally append to log_file."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a"))
    logging.basicConfig(
        level=logging.INFO, format=LOG_FORMAT, handlers=handlers, force=True
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tfc",
        description="Convert leading whitespace and line endings of text files",
    )
    parser.add_argument("-i", "--input", metavar="PATH", help="Source file")
    parser.add_argument(
        "-o",
        "--output",
        metavar="PATH",
        help="Destination file (default: standard output)",
    )
    parser.add_argument(
        "-r",
        "--replace",
        nargs="+",
        metavar="PATH",
        help="Convert the given file(s) in place",
    )

    indent = parser.add_mutually_exclusive_group()
    indent.add_argument(
        "-s", "--space", action="store_true", help="Convert leading tabs to spaces"
    )
    indent.add_argument(
        "-t", "--tab", action="store_true", help="Convert leading spaces to tabs"
    )

    ending = parser.add_mutually_exclusive_group()
    ending.add_argument(
        "-d", "--dos", action="store_true", help="Convert line endings to CR LF"
    )
    ending.add_argument(
        "-u", "--unix", action="store_true", help="Convert line endings to LF"
    )

    parser.add_argument(
        "-x",
        "--summary",
        action="store_true",
        help="Summarize leading whitespace and line endings "
        "(default when no conversion is requested)",
    )

    width = parser.add_mutually_exclusive_group()
    for tab_width in TAB_WIDTHS:
        width.add_argument(
            f"-{tab_width}",
            dest="tab_width",
            action="store_const",
            const=tab_width,
            help=f"Tab width of {tab_width} (default: {DEFAULT_TAB_WIDTH})",
        )

    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--log-file", metavar="PATH", help="Also append log records to this file"
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"tfc v{__version__}",
        help="Show program version and exit",
    )
    return parser


def parse_config(args: argparse.Namespace) -> Invocation:
    """Turn parsed arguments into an Invocation, rejecting bad combinations."""
    indent: Optional[IndentTarget] = None
    if args.space:
        indent = IndentTarget.SPACE
    elif args.tab:
        indent = IndentTarget.TAB

    line_ending: Optional[LineEnding] = None
    if args.dos:
        line_ending = LineEnding.DOS
    elif args.unix:
        line_ending = LineEnding.UNIX

    if args.tab_width is not None and indent is None:
        raise ArgumentError(f"Tab width -{args.tab_width} requires --space or --tab")

    config = ConversionConfig(
        indent=indent,
        tab_width=args.tab_width or DEFAULT_TAB_WIDTH,
        line_ending=line_ending,
    )

    if args.summary and config.converts:
        raise ArgumentError("--summary cannot be combined with conversion options")

    if args.replace:
        if args.output:
            raise PathError("--replace cannot be combined with --output")
        if args.input:
            raise ArgumentError("--replace cannot be combined with --input")
        if not config.converts:
            raise ArgumentError(
                "--replace needs at least one of --space, --tab, --dos or --unix"
            )
        return Invocation(
            mode=Mode.REPLACE, config=config, replace_paths=tuple(args.replace)
        )

    if not args.input:
        raise ArgumentError("No input file given, use --input or --replace")

    return Invocation(
        mode=Mode.CONVERT if config.converts else Mode.SUMMARY,
        config=config,
        input_path=args.input,
        output_path=args.output,
    )


def same_file(first: str, second: str) -> bool:
    if os.path.exists(first) and os.path.exists(second):
        return os.path.samefile(first, second)
    return os.path.normcase(os.path.abspath(first)) == os.path.normcase(
        os.path.abspath(second)
    )


def check_paths(invocation: Invocation) -> None:
    """Raise PathError unless every input exists and differs from the output."""
    inputs = invocation.replace_paths or (invocation.input_path,)
    for file_path in inputs:
        if not os.path.isfile(file_path):
            raise PathError(f"Input file not found: {file_path}")

    if invocation.output_path and same_file(
        invocation.input_path, invocation.output_path
    ):
        raise PathError(
            f"Input and output are the same file: {invocation.output_path}"
        )


def summarize_file(input_path: str, output_path: Optional[str] = None) -> FileSummary:
    """
    Summarize input_path.

    With an output path the two-line summary is written there, otherwise the
    human readable report goes to standard output.
    """
    summary = FileSummary.from_bytes(filebuffer.read_bytes(input_path))

    if output_path:
        filebuffer.write_lines(output_path, summary.to_lines(input_path))
        logger.info("Summary of %s written to %s", input_path, output_path)
    else:
        for line in summary.report(input_path):
            print(line)
    return summary


def convert_file(
    input_path: str, output_path: Optional[str], config: ConversionConfig
) -> bytes:
    """Convert input_path into output_path, or standard output."""
    converted = convert_buffer(filebuffer.read_bytes(input_path), config)

    if output_path:
        filebuffer.write_bytes(output_path, converted)
        logger.info("Converted %s to %s", input_path, output_path)
    else:
        sys.stdout.buffer.write(converted)
        sys.stdout.buffer.flush()
    return converted


def replace_file(file_path: str, config: ConversionConfig) -> bool:
    """
    Convert file_path in place. Returns True if the file was rewritten.

    Binary files are left alone and reported as a PathError.
    """
    if filebuffer.is_binary_file(file_path):
        raise PathError(f"Not a text file, left unchanged: {file_path}")

    original = filebuffer.read_bytes(file_path)
    converted = convert_buffer(original, config)
    if converted == original:
        logger.debug("No changes needed for file: %s", file_path)
        return False

    filebuffer.replace_file(file_path, converted)
    logger.debug("Updated file: %s", file_path)
    return True


def replace_files(files: Sequence[str], config: ConversionConfig) -> int:
    """Convert each file in place, one after another. Returns the error count."""
    processed_count: int = 0
    skipped_count: int = 0
    error_count: int = 0

    with tqdm(
        total=len(files),
        desc="Converting files",
        unit="file",
        disable=len(files) < 2,
    ) as pbar:
        for file_path in files:
            try:
                if replace_file(file_path, config):
                    processed_count += 1
                else:
                    skipped_count += 1
            except (OSError, PathError) as e:
                error_count += 1
                logger.error("Error converting %s: %s", file_path, str(e))
            finally:
                pbar.update(1)

    if error_count > 0:
        logger.warning("Encountered errors while converting %d files", error_count)
    logger.info(
        "Converted: %d, Unchanged: %d, Errors: %d",
        processed_count,
        skipped_count,
        error_count,
    )
    return error_count


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(args.verbose, args.log_file)
        logger.debug("tfc v%s", __version__)

        invocation = parse_config(args)
        check_paths(invocation)

        start_time: float = time.time()

        if invocation.mode is Mode.REPLACE:
            if replace_files(invocation.replace_paths, invocation.config):
                return 1
        elif invocation.mode is Mode.SUMMARY:
            summarize_file(invocation.input_path, invocation.output_path)
        else:
            convert_file(
                invocation.input_path, invocation.output_path, invocation.config
            )

        logger.debug("Done in %.2f seconds", time.time() - start_time)
        return 0
    except ArgumentError as e:
        logger.error("%s", str(e))
        return 2
    except PathError as e:
        logger.error("%s", str(e))
        return 1
    except OSError as e:
        logger.error("I/O error: %s", str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user.")
        return 130
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("An unexpected error occurred: %s", str(e))
        if logger.level <= logging.DEBUG:
            import traceback  # pylint: disable=import-outside-toplevel

            logger.debug("Traceback: %s", traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
