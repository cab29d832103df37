"""Command-line interface for top-few."""

import argparse
import logging
import sys

from top_few.chunks import DEFAULT_CHUNK_SIZE
from top_few.errors import ConfigurationError, TopFewError
from top_few.keys import build_key_finder, parse_fields
from top_few.solver.solve import main_top_few

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging to write to stderr."""
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="top-few",
        description="Print the most frequent keys found in the lines of a large file.",
    )

    parser.add_argument(
        "input_file",
        help="Path to the input file (one record per line)",
    )

    parser.add_argument(
        "-n",
        "--num",
        type=int,
        default=10,
        help="Number of keys to report (default: 10)",
    )

    keys = parser.add_mutually_exclusive_group()
    keys.add_argument(
        "-e",
        "--regexp",
        help="Key is the first match of this regex (capture groups joined by a space)",
    )
    keys.add_argument(
        "-f",
        "--fields",
        help="Key is these comma-separated, 1-based fields of each line (e.g. 1,3)",
    )

    parser.add_argument(
        "--separator",
        help="Field separator for --fields (default: runs of whitespace)",
    )

    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Nominal span size in bytes (default: {DEFAULT_CHUNK_SIZE})",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of parallel workers (default: executor default)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging based on --log-level
    log_level = getattr(logging, args.log_level)
    configure_logging(log_level)

    if args.num < 0:
        parser.error(f"--num must not be negative, got {args.num}")
    if args.chunk_size < 1:
        parser.error(f"--chunk-size must be at least 1, got {args.chunk_size}")
    if args.workers is not None and args.workers < 1:
        parser.error(f"--workers must be at least 1, got {args.workers}")

    try:
        fields = parse_fields(args.fields) if args.fields is not None else None
        key_finder = build_key_finder(args.regexp, fields, args.separator)
    except ConfigurationError as exc:
        parser.error(str(exc))

    try:
        main_top_few(
            input_path=args.input_file,
            key_finder=key_finder,
            num=args.num,
            chunk_size=args.chunk_size,
            workers=args.workers,
        )
    except TopFewError as exc:
        logger.error("%s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
