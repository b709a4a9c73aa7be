"""CLI interface for smart_press compression."""

import os
import sys

from tqdm import tqdm

from smart_press.config import default_telemetry_path, load_settings
from smart_press.core.compression import generate_sizes
from smart_press.core.quality import SmartCompressor
from smart_press.core.telemetry import JsonOptionStore, Telemetry
from smart_press.errors import SmartPressError
from smart_press.utils.validation import parse_dimensions, validate_psnr_target

# Settings keys set by compress options
SETTING_OVERRIDES = {
    "quality": "thumbnail_quality",
    "min_quality": "smart_min_quality",
    "target_psnr": "smart_target_psnr",
    "max_iterations": "smart_max_iterations",
    "min_savings": "smart_min_savings_percent",
}


def parse_sizes(value):
    """Parse a comma-separated list of WIDTHxHEIGHT sizes.

    Args:
        value: String like "150x150,300x,x600" (None means original size)

    Returns:
        list: (width, height) tuples, 0 for an unset side

    Raises:
        ValueError: If one of the sizes is malformed
    """
    if not value:
        return [(0, 0)]

    sizes = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        sizes.append(parse_dimensions(item))

    if not sizes:
        raise ValueError(f"No sizes in: {value}")

    return sizes


def build_settings(args):
    """Merge the settings file with the command line overrides."""
    settings = load_settings(args.settings)

    for arg_name, key in SETTING_OVERRIDES.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            settings[key] = value

    if args.no_smart:
        settings["smart_compression_enabled"] = False

    return settings


def open_telemetry(args):
    """Telemetry backed by the JSON stats file."""
    path = getattr(args, "stats_file", None) or default_telemetry_path()
    return Telemetry(JsonOptionStore(path))


def format_result_line(entry):
    """One line describing a written size."""
    result = entry["result"]
    line = (
        f"  {entry['size_name']}: {result.format} q={result.quality} "
        f"{result.bytes} bytes ({result.strategy}, {result.iterations} iterations)"
    )

    savings = result.savings_percent
    if savings:
        line += f", saved {savings:.1f}% vs baseline"

    if result.metric is not None:
        line += f", PSNR {result.metric:.2f} dB"

    if result.substituted:
        line += f" [requested {result.requested_format}]"

    return line


def run_compression(args):
    """Run the compression with provided arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        int: Exit code (0 for success, non-zero for error)
    """
    try:
        sizes = parse_sizes(args.sizes)
    except ValueError as e:
        print(f"Invalid sizes: {e}", file=sys.stderr)
        print("Format should be WIDTHxHEIGHT (e.g., 800x600)", file=sys.stderr)
        print("To maintain aspect ratio, use WIDTHx or xHEIGHT", file=sys.stderr)
        return 1

    if args.target_psnr is not None:
        try:
            validate_psnr_target(args.target_psnr)
        except ValueError as e:
            print(f"Invalid PSNR target: {e}", file=sys.stderr)
            return 1

    # Ensure input file exists
    if not os.path.isfile(args.input_image):
        print(f"Input file not found: {args.input_image}", file=sys.stderr)
        return 1

    output_dir = args.output
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    settings = build_settings(args)
    telemetry = open_telemetry(args)
    compressor = SmartCompressor(telemetry=telemetry)

    total = len(sizes) * (2 if args.retina else 1)

    try:
        print(f"Processing: {args.input_image}")

        with tqdm(total=total, desc="Encoding sizes", unit="size") as pbar:

            def progress(name, result):
                pbar.set_postfix_str(f"{name} q={result.quality}")
                pbar.update(1)

            outputs = generate_sizes(
                args.input_image,
                sizes,
                output_dir=output_dir,
                settings=settings,
                use_webp=args.webp,
                retina=args.retina,
                compressor=compressor,
                telemetry=telemetry,
                progress=progress,
                format_name=args.format,
            )

    except (SmartPressError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not outputs:
        print("No size could be written", file=sys.stderr)
        return 1

    print("\nCompression complete!")
    for entry in outputs:
        print(format_result_line(entry))
        print(f"    -> {entry['path']}")

    if len(outputs) < total:
        print(f"\n{total - len(outputs)} of {total} sizes failed", file=sys.stderr)
        return 1

    return 0
