#!/usr/bin/env python
"""Main entry point for smart_press when run as a script."""

import argparse
import logging
import sys

from smart_press import __version__
from smart_press.config import (
    DEFAULT_SMART_MAX_ITERATIONS,
    DEFAULT_SMART_MIN_QUALITY,
    DEFAULT_SMART_MIN_SAVINGS_PERCENT,
    DEFAULT_SMART_TARGET_PSNR,
    DEFAULT_THUMBNAIL_QUALITY,
)

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose=False, log_file=None):
    """Configure logging for a CLI run.

    Args:
        verbose: Log debug messages instead of warnings only
        log_file: Optional file receiving every log line
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    handlers[0].setLevel(level)


def create_parent_parser():
    """Create a parent parser with common arguments."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show detailed progress information",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write log messages to this file",
    )
    parser.add_argument(
        "--stats-file",
        type=str,
        help="Telemetry JSON file (default: ~/.smart_press/telemetry.json)",
    )

    # Add version information for parent parser epilog
    parser.epilog = f"smart_press {__version__}"

    return parser


def add_compression_arguments(parser):
    """Add the compress command arguments to a parser."""
    parser.add_argument("input_image", help="Path to source image file")
    parser.add_argument(
        "--sizes",
        "-s",
        type=str,
        help=(
            "Comma-separated sizes (width)x(height). "
            "If one dimension is not set, the aspect ratio is respected"
        ),
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output directory. If not provided, uses the input's directory",
    )
    parser.add_argument(
        "--format",
        "-f",
        type=str,
        help="Output format (jpeg, webp, png, gif). Overrides --webp",
    )
    parser.add_argument(
        "--webp",
        action="store_true",
        help="Encode every size as WebP instead of the source format",
    )
    parser.add_argument(
        "--retina", action="store_true", help="Also generate @2x variants"
    )
    parser.add_argument(
        "--settings", type=str, help="JSON settings file with stored defaults"
    )
    parser.add_argument(
        "--no-smart",
        action="store_true",
        help="Encode once at the configured quality without searching",
    )
    parser.add_argument(
        "--quality",
        "-q",
        type=int,
        help=f"Initial quality (default {DEFAULT_THUMBNAIL_QUALITY})",
    )
    parser.add_argument(
        "--min-quality",
        type=int,
        help=f"Lowest quality to search (default {DEFAULT_SMART_MIN_QUALITY})",
    )
    parser.add_argument(
        "--target-psnr",
        type=float,
        help=f"PSNR target in dB (default {DEFAULT_SMART_TARGET_PSNR})",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        help=f"Trial encode budget (default {DEFAULT_SMART_MAX_ITERATIONS})",
    )
    parser.add_argument(
        "--min-savings",
        type=float,
        help=(
            "Savings percent a fallback step must deliver "
            f"(default {DEFAULT_SMART_MIN_SAVINGS_PERCENT})"
        ),
    )
    return parser


def build_parser():
    """Build the top level parser with its subcommands."""
    parent_parser = create_parent_parser()

    parser = argparse.ArgumentParser(
        description="smart_press adaptive image re-encoding",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        epilog=parent_parser.epilog,
    )

    # Set up subparsers for commands
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Compression command
    compress_parser = subparsers.add_parser(
        "compress",
        parents=[parent_parser],
        help="Generate re-encoded sizes of an image",
    )
    add_compression_arguments(compress_parser)

    # Statistics command
    stats_parser = subparsers.add_parser(
        "stats", parents=[parent_parser], help="Show compression telemetry"
    )
    stats_parser.add_argument(
        "--json", action="store_true", help="Print the raw summary as JSON"
    )

    # Reset command
    subparsers.add_parser(
        "clear-stats", parents=[parent_parser], help="Reset compression telemetry"
    )

    # Version command
    subparsers.add_parser("version", help="Show version information")

    return parser


def main(argv=None):
    """Main entry point for the script."""
    parser = build_parser()

    # Parse arguments
    args = parser.parse_args(argv)

    if getattr(args, "verbose", None) is not None:
        setup_logging(args.verbose, args.log_file)

    # Handle commands
    if args.command == "compress":
        from smart_press.cli.compression_cli import run_compression

        return run_compression(args)

    elif args.command == "stats":
        from smart_press.cli.stats_cli import run_stats

        return run_stats(args)

    elif args.command == "clear-stats":
        from smart_press.cli.stats_cli import run_clear

        return run_clear(args)

    elif args.command == "version":
        print(f"smart_press version {__version__}")
        return 0

    else:
        # No command specified, show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
