"""Utilities for input validation."""

import os
import functools


def validate_file_exists(func):
    """Decorator to validate that the source file exists before processing."""

    @functools.wraps(func)
    def wrapper(input_path, *args, **kwargs):
        if not input_path or not os.path.isfile(input_path):
            raise FileNotFoundError(f"Input file not found: {input_path}")
        return func(input_path, *args, **kwargs)

    return wrapper


def validate_quality_range(func):
    """Decorator to validate quality is within valid range (0-100)."""

    @functools.wraps(func)
    def wrapper(image, format_name, quality=None, *args, **kwargs):
        if quality is not None:  # Allow None for lossless formats
            quality = int(quality)
            if quality < 0 or quality > 100:
                raise ValueError(f"Quality must be between 0 and 100, got {quality}")
        return func(image, format_name, quality, *args, **kwargs)

    return wrapper


def ensure_output_dir(func):
    """Decorator to ensure the destination directory exists."""

    @functools.wraps(func)
    def wrapper(input_path, output_path, *args, **kwargs):
        output_dir = os.path.dirname(os.fspath(output_path))
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        return func(input_path, output_path, *args, **kwargs)

    return wrapper


def parse_dimensions(dimensions):
    """Parse a dimensions string (e.g. '800x600', '800x', 'x600').

    Args:
        dimensions: Dimensions string

    Returns:
        tuple: (width, height) with 0 for an unset side

    Raises:
        ValueError: If the string is not in WIDTHxHEIGHT form
    """
    if not validate_dimensions_format(dimensions):
        raise ValueError(
            f"Invalid dimensions: {dimensions!r} (expected WIDTHxHEIGHT, WIDTHx or xHEIGHT)"
        )

    width, height = dimensions.lower().split("x")
    return int(width or 0), int(height or 0)


def validate_dimensions_format(dimensions):
    """Validate the dimensions string format (e.g., '800x600').

    Args:
        dimensions: Dimensions string to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not dimensions:
        return False

    parts = dimensions.lower().split("x")
    if len(parts) != 2:
        return False

    width, height = parts

    # At least one side is needed
    if not width and not height:
        return False

    # Allow empty dimension to maintain aspect ratio
    if width and not width.isdigit():
        return False
    if height and not height.isdigit():
        return False

    return True


def validate_psnr_target(target_psnr):
    """Validate a PSNR target in dB.

    Args:
        target_psnr: Target value

    Returns:
        float: The validated target

    Raises:
        ValueError: If the target is not a positive finite number
    """
    target_psnr = float(target_psnr)
    if not target_psnr > 0 or target_psnr == float("inf"):
        raise ValueError(f"Target PSNR must be a positive number, got {target_psnr}")
    return target_psnr
