"""Utility functions for smart_press."""

# Import key functions to make them available at the utils package level
from smart_press.utils.files import (
    create_temp_path,
    write_temp_file,
    move_or_copy,
    delete,
    cleanup,
)

from smart_press.utils.image import (
    PillowImage,
    format_supported,
    load_image,
    resize_image,
    create_gradient_image,
)

from smart_press.utils.validation import (
    validate_file_exists,
    validate_quality_range,
    ensure_output_dir,
    validate_dimensions_format,
    parse_dimensions,
    validate_psnr_target,
)

# Define what's available when doing "from smart_press.utils import *"
__all__ = [
    # File utilities
    "create_temp_path",
    "write_temp_file",
    "move_or_copy",
    "delete",
    "cleanup",
    # Image utilities
    "PillowImage",
    "format_supported",
    "load_image",
    "resize_image",
    "create_gradient_image",
    # Validation utilities
    "validate_file_exists",
    "validate_quality_range",
    "ensure_output_dir",
    "validate_dimensions_format",
    "parse_dimensions",
    "validate_psnr_target",
]
