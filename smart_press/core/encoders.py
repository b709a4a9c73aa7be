"""Candidate encoders for the supported output formats."""

import logging

from smart_press.core.models import Candidate
from smart_press.utils.files import delete, write_temp_file
from smart_press.utils.image import format_supported
from smart_press.utils.validation import validate_quality_range

logger = logging.getLogger(__name__)

# File extensions for each encoder format
FORMAT_EXTENSIONS = {
    "jpeg": "jpg",
    "webp": "webp",
    "png": "png",
    "gif": "gif",
}

# Alternative names accepted for a format
FORMAT_ALIASES = {
    "jpg": "jpeg",
    "jpe": "jpeg",
}

LOSSY_FORMATS = ("jpeg", "webp")
LOSSLESS_FORMATS = ("png", "gif")

# Format used when the requested one cannot be written
FALLBACK_FORMAT = "jpeg"

# Format of the reference rendition used for metrics
REFERENCE_FORMAT = "png"


def normalize_format(format_name):
    """Lower-case a format name and resolve aliases."""
    name = (format_name or "").strip().lower().lstrip(".")
    return FORMAT_ALIASES.get(name, name)


def resolve_format(format_name, supported=format_supported):
    """Pick the format that will actually be encoded.

    Unknown formats, and formats the image library cannot write, fall back
    to JPEG. The substitution is logged.

    Args:
        format_name: Requested format
        supported: Callable telling whether a format can be written

    Returns:
        tuple: (format, substituted)
    """
    name = normalize_format(format_name)

    if name in FORMAT_EXTENSIONS and supported(name):
        return name, False

    if name in FORMAT_EXTENSIONS:
        logger.warning("No encoder support for %s, falling back to %s", name, FALLBACK_FORMAT)
    else:
        logger.warning("Unsupported format %r, falling back to %s", format_name, FALLBACK_FORMAT)

    return FALLBACK_FORMAT, True


def is_lossless(format_name):
    """Whether a format skips the quality search."""
    return normalize_format(format_name) in LOSSLESS_FORMATS


def get_extension(format_name):
    """Get file extension for a format.

    Args:
        format_name: Name of the format

    Returns:
        str: File extension (without dot)

    Raises:
        ValueError: If the format is not supported
    """
    name = normalize_format(format_name)
    if name not in FORMAT_EXTENSIONS:
        raise ValueError(f"Unsupported format: {format_name}")

    return FORMAT_EXTENSIONS[name]


@validate_quality_range
def encode_direct(image, format_name, quality=None):
    """Encode a private copy of the image into bytes.

    Args:
        image: Image handle exposing copy() and encode()
        format_name: Target format
        quality: Quality (0-100) for lossy formats, None for lossless ones

    Returns:
        bytes: Encoded data
    """
    if format_name in LOSSLESS_FORMATS:
        quality = None

    return image.copy().encode(format_name, quality)


def encode_to_temp(image, format_name, quality=None, temp_dir=None, iteration=1):
    """Encode the image into a new temporary file.

    Allocates exactly one temp file. Failures are logged and reported as
    None so a search can treat the quality level as unusable.

    Args:
        image: Image handle exposing copy() and encode()
        format_name: Target format
        quality: Quality (0-100) for lossy formats
        temp_dir: Directory for the temp file (default: system temp)
        iteration: Trial index recorded on the candidate

    Returns:
        Candidate: The encoded candidate, or None on failure
    """
    try:
        data = encode_direct(image, format_name, quality)
    except Exception as e:
        logger.warning("Encoding %s at quality %s failed: %s", format_name, quality, e)
        return None

    try:
        path = write_temp_file(data, get_extension(format_name), temp_dir)
    except OSError as e:
        logger.warning("Failed to save temp file for %s: %s", format_name, e)
        return None

    return Candidate(
        quality=100 if quality is None else int(quality),
        bytes=len(data),
        path=path,
        iteration=iteration,
    )


def create_reference(image, temp_dir=None):
    """Write a lossless rendition of the image for metric comparison.

    Args:
        image: Image handle exposing copy() and encode()
        temp_dir: Directory for the temp file (default: system temp)

    Returns:
        str: Path to the reference file, or None on failure
    """
    candidate = encode_to_temp(image, REFERENCE_FORMAT, None, temp_dir)
    if candidate is None:
        logger.warning("Failed to create reference image")
        return None

    return candidate.path


def discard(candidate):
    """Delete a candidate's temp file."""
    if candidate is not None:
        delete(candidate.path)
