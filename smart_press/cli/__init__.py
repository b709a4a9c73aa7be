"""Command-line interfaces for smart_press."""

from smart_press.cli.compression_cli import run_compression
from smart_press.cli.main import main
from smart_press.cli.stats_cli import run_clear, run_stats

# Define what's available when doing "from smart_press.cli import *"
__all__ = ["main", "run_compression", "run_stats", "run_clear"]
