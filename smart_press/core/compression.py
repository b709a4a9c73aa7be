"""Thumbnail generation workflow built on the adaptive encoder."""

import logging
import os

from smart_press.config import load_settings, resolve_tuning_options, sanitize_settings
from smart_press.core import encoders
from smart_press.core.models import STRATEGY_DIRECT, EncodeResult
from smart_press.core.quality import SmartCompressor
from smart_press.core.telemetry import record_result
from smart_press.errors import EncodingError, SmartPressError
from smart_press.utils.files import delete, move_or_copy, write_temp_file
from smart_press.utils.image import load_image, resize_image
from smart_press.utils.validation import validate_file_exists

logger = logging.getLogger(__name__)

# Prefix of generated size names
SIZE_PREFIX = "smart-"

# Suffix and scale of high density variants
RETINA_SUFFIX = "@2x"
RETINA_SCALE = 2


def destination_for(source_path, size_name, extension, output_dir=None):
    """Build the path of a generated size: <basename>-<size_name>.<ext>.

    Args:
        source_path: Original image path
        size_name: Name of the generated size
        extension: Extension of the output file (without dot)
        output_dir: Directory for the output (default: next to the source)

    Returns:
        str: Destination path
    """
    base_name = os.path.splitext(os.path.basename(source_path))[0]
    directory = output_dir if output_dir is not None else os.path.dirname(source_path)
    return os.path.join(directory, f"{base_name}-{size_name}.{extension.lstrip('.')}")


def size_name_for(width, height):
    """Name a generated size after its dimensions."""
    return f"{SIZE_PREFIX}{width}x{height}"


def resolve_format_for_extension(extension):
    """Pick the encoder format for an original file extension."""
    ext = (extension or "").lower().lstrip(".")
    if ext in ("jpg", "jpeg"):
        return "jpeg"

    if ext in ("png", "gif", "webp"):
        return ext

    return "jpeg"


def resolve_webp_quality(original_extension, requested_quality):
    """WebP sources are re-encoded at full quality."""
    if (original_extension or "").lower().lstrip(".") == "webp":
        return 100

    return requested_quality


def encode_direct_to(image, format_name, destination, options, telemetry=None):
    """Encode once at the initial quality and commit, without any search.

    Args:
        image: Image handle
        format_name: Target format
        destination: Final file path
        options: TuningOptions (only initial_quality is used)
        telemetry: Telemetry receiving the outcome, optional

    Returns:
        EncodeResult: Result with strategy "direct"

    Raises:
        EncodingError: If the image cannot be encoded or committed
    """
    options = options.normalized()
    requested = encoders.normalize_format(format_name)
    fmt, _ = encoders.resolve_format(format_name)
    quality = 100 if fmt in encoders.LOSSLESS_FORMATS else options.initial_quality

    temp_path = None
    try:
        data = encoders.encode_direct(image, fmt, quality)
        temp_path = write_temp_file(data, encoders.get_extension(fmt))
        move_or_copy(temp_path, destination, overwrite=True)
    except (OSError, ValueError, SmartPressError) as e:
        raise EncodingError(
            f"Direct encode failed: {e}", format=fmt, destination=destination, step="direct"
        ) from e
    finally:
        delete(temp_path)

    result = EncodeResult(
        quality=quality,
        bytes=len(data),
        baseline_bytes=len(data),
        metric=None,
        iterations=1,
        strategy=STRATEGY_DIRECT,
        path=destination,
        format=fmt,
        requested_format=requested,
    )

    if telemetry is not None:
        record_result(telemetry, result, options)

    return result


def optimize_and_save(
    image,
    format_name,
    destination,
    options,
    enabled=True,
    compressor=None,
    telemetry=None,
):
    """Run smart compression if enabled, otherwise perform a direct encode.

    A fatal smart compression failure falls back to the direct encode.

    Args:
        image: Resized image handle
        format_name: Target format
        destination: Final file path
        options: TuningOptions for the encode
        enabled: Whether the adaptive search is used
        compressor: SmartCompressor to use (default: new one with telemetry)
        telemetry: Telemetry for direct encodes and a default compressor

    Returns:
        EncodeResult: Result, or None if even the direct encode failed
    """
    if enabled:
        if compressor is None:
            compressor = SmartCompressor(telemetry=telemetry)

        try:
            return compressor.encode(image, format_name, destination, options)
        except EncodingError as e:
            logger.warning("Smart compression failed, falling back: %s", e)

    try:
        return encode_direct_to(image, format_name, destination, options, telemetry)
    except EncodingError as e:
        logger.error("Direct encode failed for %s: %s", destination, e)
        return None


@validate_file_exists
def generate_sizes(
    source_path,
    sizes,
    output_dir=None,
    settings=None,
    use_webp=False,
    retina=False,
    compressor=None,
    telemetry=None,
    progress=None,
    format_name=None,
):
    """Generate re-encoded sizes of an image.

    Args:
        source_path: Original image
        sizes: Iterable of (width, height); 0 leaves a side unconstrained
        output_dir: Directory for outputs (default: next to the source)
        settings: Settings mapping (default: defaults from config)
        use_webp: Encode every size as WebP instead of the source format
        retina: Also generate @2x variants
        compressor: SmartCompressor to use
        telemetry: Telemetry receiving every outcome
        progress: Callable invoked after each written variant
        format_name: Output format overriding use_webp and the source format

    Returns:
        list: One dict per written variant with size_name, path, width,
            height, format, density and result
    """
    settings = sanitize_settings(settings if settings is not None else load_settings())
    sizes = list(sizes)

    original_extension = os.path.splitext(source_path)[1].lstrip(".").lower()
    if format_name is None:
        format_name = "webp" if use_webp else resolve_format_for_extension(original_extension)
    else:
        format_name = encoders.normalize_format(format_name)

    quality = settings["thumbnail_quality"]
    if format_name == "webp":
        quality = resolve_webp_quality(original_extension, quality)

    enabled, base_options = resolve_tuning_options(settings, quality)

    if enabled and compressor is None:
        compressor = SmartCompressor(telemetry=telemetry)

    image = load_image(source_path)
    orig_width, orig_height = image.size
    extension = encoders.get_extension(encoders.resolve_format(format_name)[0])

    logger.info(
        "Generating %d sizes for %s (%s, smart=%s, options=%s)",
        len(sizes),
        source_path,
        format_name,
        enabled,
        base_options.summary(),
    )

    outputs = []
    for width, height in sizes:
        crop = bool(width and height)
        resized = resize_image(image, width, height, crop=crop)
        dest_width, dest_height = resized.size
        size_name = size_name_for(dest_width, dest_height)

        variants = [(size_name, resized, dest_width, dest_height, "1x", False)]

        if retina:
            retina_width = max(1, dest_width * RETINA_SCALE)
            retina_height = max(1, dest_height * RETINA_SCALE)
            upscaled = retina_width > orig_width or retina_height > orig_height
            retina_image = resize_image(image, retina_width, retina_height, crop=crop)
            retina_width, retina_height = retina_image.size
            variants.append(
                (
                    size_name + RETINA_SUFFIX,
                    retina_image,
                    retina_width,
                    retina_height,
                    "2x",
                    upscaled,
                )
            )
            if upscaled:
                logger.info(
                    "Retina upscaling for %s to %dx%d",
                    source_path,
                    retina_width,
                    retina_height,
                )

        for name, variant_image, var_width, var_height, density, upscaled in variants:
            destination = destination_for(source_path, name, extension, output_dir)
            options = base_options.with_context(
                {
                    "size_name": name,
                    "density": density,
                    "width": var_width,
                    "height": var_height,
                    "source": "thumbnail",
                },
                upscaled=upscaled,
            )

            result = optimize_and_save(
                variant_image,
                format_name,
                destination,
                options,
                enabled=enabled,
                compressor=compressor,
                telemetry=telemetry,
            )

            if result is None:
                logger.warning("Skipping %s for %s: encode failed", name, source_path)
                continue

            logger.info(
                "Generated %s => %s, quality=%d, strategy=%s",
                name,
                result.path,
                result.quality,
                result.strategy,
            )

            outputs.append(
                {
                    "size_name": name,
                    "path": result.path,
                    "width": var_width,
                    "height": var_height,
                    "format": result.format,
                    "density": density,
                    "result": result,
                }
            )

            if progress is not None:
                progress(name, result)

    return outputs
