"""
Command-line entry point for random art.
Reads a digest, draws it and writes the picture to stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys

import simple_chalk as chalk  # type: ignore[import-untyped]
from rich.console import Console
from rich.text import Text

from fingerprint_source import InputFormat, SourceOptions, load_digest, parse_fingerprint
from randomart import RenderFailure, render

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]

COLUMN_GAP = "   "


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="randomart",
        description="Draw a key fingerprint as random art.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="-",
        help="file to read the digest from ('-' for stdin, the default)",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in InputFormat],
        default=None,
        help="input format: raw bytes (default for files), hex text, or ssh-keygen "
        "fingerprint (default for --fingerprint and --compare)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        metavar="N",
        help="read at most N bytes from the input",
    )
    texts = parser.add_mutually_exclusive_group()
    texts.add_argument("--fingerprint", metavar="TEXT", help="draw a fingerprint given as text")
    texts.add_argument(
        "--compare",
        nargs=2,
        metavar=("A", "B"),
        help="draw two fingerprints side by side and report whether they match",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log more (repeat for debug output)",
    )
    return parser


def side_by_side(left: str, right: str) -> str:
    """Join two pictures of equal height column-wise."""
    return "\n".join(
        a + COLUMN_GAP + b for a, b in zip(left.splitlines(), right.splitlines())
    )


def _read_digest(path: str, options: SourceOptions) -> bytes:
    if path == "-":
        return load_digest(sys.stdin.buffer, options)
    with open(path, "rb") as stream:
        return load_digest(stream, options)


def _report_error(console: Console, message: str) -> int:
    error = Text()
    error.append("ERROR: ", style="bold red")
    error.append(message)
    console.print(error)
    return EXIT_ERROR


def _report_failure(console: Console, failure: RenderFailure) -> int:
    return _report_error(console, f"rendering failed ({failure.reason.value}): {failure.details}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=LOG_LEVELS[min(args.verbose, len(LOG_LEVELS) - 1)],
        format="%(levelname)s: %(message)s",
    )

    out = Console(markup=False, highlight=False)
    err = Console(stderr=True, markup=False, highlight=False)

    from_text = args.fingerprint is not None or args.compare is not None
    if args.format is not None:
        input_format = InputFormat(args.format)
    else:
        input_format = InputFormat.SSH if from_text else InputFormat.RAW
    if from_text and input_format is InputFormat.RAW:
        parser.error("--format raw cannot be used with --fingerprint or --compare")
    if from_text and (args.limit is not None or args.file != "-"):
        parser.error("FILE and --limit cannot be used with --fingerprint or --compare")

    try:
        if args.compare is not None:
            digests = [parse_fingerprint(text, input_format) for text in args.compare]
        elif args.fingerprint is not None:
            digests = [parse_fingerprint(args.fingerprint, input_format)]
        else:
            options = SourceOptions(input_format=input_format, limit=args.limit)
            digests = [_read_digest(args.file, options)]
    except (ValueError, OSError) as exc:
        return _report_error(err, str(exc))

    pictures = []
    for digest in digests:
        if logger.isEnabledFor(logging.INFO):
            logger.info("rendering %d byte digest: %s", len(digest), digest.hex(":"))
        result = render(digest)
        if isinstance(result, RenderFailure):
            return _report_failure(err, result)
        pictures.append(result)

    if len(pictures) == 1:
        out.out(pictures[0])
        return EXIT_OK

    left, right = pictures
    out.out(side_by_side(left, right))
    if left == right:
        err.print(Text.from_ansi(chalk.green("✓ pictures match")))
        return EXIT_OK
    err.print(Text.from_ansi(chalk.red("✗ pictures differ")))
    return EXIT_DIFFERENT


if __name__ == "__main__":
    sys.exit(main())
