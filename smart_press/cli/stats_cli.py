"""CLI interface for compression telemetry."""

import json
import sys
from datetime import datetime

import pandas as pd

from smart_press.cli.compression_cli import open_telemetry

FORMAT_COLUMNS = [
    "count",
    "average_quality",
    "average_iterations",
    "average_psnr",
    "average_savings_percent",
]


def _fmt(value, suffix="", precision=2):
    if value is None:
        return "n/a"
    return f"{value:.{precision}f}{suffix}"


def formats_table(summary):
    """Per-format averages as a DataFrame indexed by format.

    Args:
        summary: Output of Telemetry.summarize()

    Returns:
        DataFrame: One row per format, empty when nothing was recorded
    """
    df = pd.DataFrame.from_dict(summary["formats"], orient="index")
    if df.empty:
        return pd.DataFrame(columns=FORMAT_COLUMNS)

    df = df.reindex(columns=FORMAT_COLUMNS)
    df[FORMAT_COLUMNS[1:]] = df[FORMAT_COLUMNS[1:]].astype(float)
    df.index.name = "format"
    return df.sort_values("count", ascending=False)


def print_summary(summary):
    """Print a human-readable telemetry summary.

    Args:
        summary: Output of Telemetry.summarize()
    """
    print("\n===== COMPRESSION SUMMARY =====")
    print(f"Total operations: {summary['total_operations']}")

    if not summary["total_operations"]:
        print("No compression recorded yet.")
        return

    print(f"Average quality: {_fmt(summary['average_quality'])}")
    print(f"Average iterations: {_fmt(summary['average_iterations'])}")
    print(f"Average PSNR: {_fmt(summary['average_psnr'], ' dB')}")
    print(f"Average savings: {_fmt(summary['average_savings_percent'], '%')}")

    print("\n--- Strategies ---")
    for strategy, count in summary["strategies"].items():
        print(f"{strategy}: {count}")

    table = formats_table(summary)
    if not table.empty:
        print("\n--- Formats ---")
        print(table.to_string(float_format=lambda v: f"{v:.2f}", na_rep="n/a"))

    if summary["densities"]:
        print("\n--- Densities ---")
        for density, count in summary["densities"].items():
            print(f"{density}: {count}")

    if summary["upscaled_count"]:
        print(f"\nUpscaled variants: {summary['upscaled_count']}")

    last_event = summary["last_event"]
    if last_event:
        print("\n--- Last event ---")
        print(
            f"{last_event.get('size_name') or '-'}: {last_event['format']} "
            f"q={last_event['quality']} {last_event['bytes']} bytes "
            f"({last_event['strategy']})"
        )

    if summary["last_updated"]:
        updated = datetime.fromtimestamp(summary["last_updated"])
        print(f"Last updated: {updated:%Y-%m-%d %H:%M:%S}")


def run_stats(args):
    """Show the telemetry summary.

    Args:
        args: Parsed command-line arguments

    Returns:
        int: Exit code (0 for success, non-zero for error)
    """
    try:
        summary = open_telemetry(args).summarize()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print_summary(summary)

    return 0


def run_clear(args):
    """Reset the telemetry aggregate."""
    try:
        open_telemetry(args).clear()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Compression statistics cleared.")
    return 0
