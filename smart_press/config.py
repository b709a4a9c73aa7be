"""Configuration defaults, tuning options and persisted settings."""

import json
import logging
import os
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

# Quality used for thumbnails when nothing else is configured
DEFAULT_THUMBNAIL_QUALITY = 85

# Lowest thumbnail quality accepted from settings
MIN_THUMBNAIL_QUALITY = 60

# Smart compression defaults
DEFAULT_SMART_MIN_QUALITY = 60
DEFAULT_SMART_TARGET_PSNR = 41.5
DEFAULT_SMART_MAX_ITERATIONS = 6
DEFAULT_SMART_MIN_SAVINGS_PERCENT = 5.0

# Floor that min_quality is clamped to when it exceeds initial_quality
SMART_MIN_QUALITY_FLOOR = DEFAULT_SMART_MIN_QUALITY

# Quality step used by the filesize fallback
FALLBACK_QUALITY_STEP = 5

# Value reported for identical images instead of an infinite PSNR
PSNR_IDENTICAL = 99.99

DEFAULT_SETTINGS = {
    "convert_to_webp": True,
    "thumbnail_quality": DEFAULT_THUMBNAIL_QUALITY,
    "smart_compression_enabled": True,
    "smart_min_quality": DEFAULT_SMART_MIN_QUALITY,
    "smart_target_psnr": DEFAULT_SMART_TARGET_PSNR,
    "smart_max_iterations": DEFAULT_SMART_MAX_ITERATIONS,
    "smart_min_savings_percent": DEFAULT_SMART_MIN_SAVINGS_PERCENT,
}


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass(frozen=True)
class TuningOptions:
    """Knobs for one adaptive encode.

    Attributes:
        initial_quality: Baseline quality and search ceiling (0-100)
        min_quality: Lowest quality the search may reach (0-100)
        target_psnr: Minimum acceptable PSNR in dB
        max_iterations: Cap on trial encodes, baseline included
        min_savings_percent: Size reduction a fallback step must deliver
        context: Free-form tags passed through to telemetry
        upscaled: Whether the resized image was enlarged from its source
    """

    initial_quality: int = DEFAULT_THUMBNAIL_QUALITY
    min_quality: int = DEFAULT_SMART_MIN_QUALITY
    target_psnr: float = DEFAULT_SMART_TARGET_PSNR
    max_iterations: int = DEFAULT_SMART_MAX_ITERATIONS
    min_savings_percent: float = DEFAULT_SMART_MIN_SAVINGS_PERCENT
    context: dict = field(default_factory=dict)
    upscaled: bool = False

    def normalized(self):
        """Return a copy with every option coerced into its valid range."""
        initial_quality = _clamp(int(self.initial_quality), 0, 100)
        min_quality = _clamp(int(self.min_quality), 0, 100)

        if min_quality > initial_quality:
            min_quality = max(SMART_MIN_QUALITY_FLOOR, min(initial_quality, 100))

        return replace(
            self,
            initial_quality=initial_quality,
            min_quality=min_quality,
            target_psnr=float(self.target_psnr),
            max_iterations=max(1, int(self.max_iterations)),
            min_savings_percent=_clamp(float(self.min_savings_percent), 0.0, 100.0),
            context=dict(self.context or {}),
            upscaled=bool(self.upscaled),
        )

    def with_context(self, context, upscaled=None):
        """Return a copy carrying a different context bag."""
        return replace(
            self,
            context=dict(context or {}),
            upscaled=self.upscaled if upscaled is None else bool(upscaled),
        )

    def telemetry_context(self):
        """Context bag as it should be recorded in telemetry."""
        context = dict(self.context or {})
        if self.upscaled:
            context["upscaled"] = True
        return context

    @classmethod
    def from_mapping(cls, values):
        """Build options from a loose mapping (settings, CLI, JSON).

        Unknown keys are ignored and missing keys use the defaults.
        """
        values = values or {}
        defaults = cls()
        return cls(
            initial_quality=int(values.get("initial_quality", defaults.initial_quality)),
            min_quality=int(values.get("min_quality", defaults.min_quality)),
            target_psnr=float(values.get("target_psnr", defaults.target_psnr)),
            max_iterations=int(values.get("max_iterations", defaults.max_iterations)),
            min_savings_percent=float(
                values.get("min_savings_percent", defaults.min_savings_percent)
            ),
            context=dict(values.get("context") or {}),
            upscaled=bool(values.get("upscaled", False)),
        )

    def summary(self):
        """Options without the context bag, for log lines."""
        return {
            "initial_quality": self.initial_quality,
            "min_quality": self.min_quality,
            "target_psnr": self.target_psnr,
            "max_iterations": self.max_iterations,
            "min_savings_percent": self.min_savings_percent,
        }


def _as_number(value, cast, default):
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default


def sanitize_settings(values):
    """Coerce raw settings into the persisted settings shape.

    Args:
        values: Mapping read from disk or passed by a caller

    Returns:
        dict: Settings with every key present and in range
    """
    values = values or {}

    quality = _as_number(
        values.get("thumbnail_quality"), int, DEFAULT_THUMBNAIL_QUALITY
    )
    quality = _clamp(quality, MIN_THUMBNAIL_QUALITY, 100)

    return {
        "convert_to_webp": bool(
            values.get("convert_to_webp", DEFAULT_SETTINGS["convert_to_webp"])
        ),
        "thumbnail_quality": quality,
        "smart_compression_enabled": bool(
            values.get(
                "smart_compression_enabled",
                DEFAULT_SETTINGS["smart_compression_enabled"],
            )
        ),
        "smart_min_quality": _clamp(
            _as_number(
                values.get("smart_min_quality"), int, DEFAULT_SMART_MIN_QUALITY
            ),
            0,
            100,
        ),
        "smart_target_psnr": _as_number(
            values.get("smart_target_psnr"), float, DEFAULT_SMART_TARGET_PSNR
        ),
        "smart_max_iterations": max(
            1,
            _as_number(
                values.get("smart_max_iterations"), int, DEFAULT_SMART_MAX_ITERATIONS
            ),
        ),
        "smart_min_savings_percent": _clamp(
            _as_number(
                values.get("smart_min_savings_percent"),
                float,
                DEFAULT_SMART_MIN_SAVINGS_PERCENT,
            ),
            0.0,
            100.0,
        ),
    }


def load_settings(path=None):
    """Load settings from a JSON file.

    A missing or unreadable file yields the defaults.

    Args:
        path: Path to the settings file

    Returns:
        dict: Sanitized settings
    """
    if path is None or not os.path.isfile(path):
        return sanitize_settings(DEFAULT_SETTINGS)

    try:
        with open(path, encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, ValueError) as e:
        logger.warning("Could not read settings from %s: %s", path, e)
        return sanitize_settings(DEFAULT_SETTINGS)

    if not isinstance(raw, dict):
        logger.warning("Ignoring settings in %s: expected an object", path)
        return sanitize_settings(DEFAULT_SETTINGS)

    merged = dict(DEFAULT_SETTINGS)
    merged.update(raw)
    return sanitize_settings(merged)


def save_settings(path, settings):
    """Write sanitized settings to a JSON file and return them."""
    clean = sanitize_settings(settings)

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(clean, handle, indent=2, sort_keys=True)

    return clean


def resolve_tuning_options(settings, quality=None):
    """Turn persisted settings into tuning options.

    Args:
        settings: Sanitized settings mapping
        quality: Override for the initial quality

    Returns:
        tuple: (enabled, TuningOptions)
    """
    settings = sanitize_settings(settings)
    initial_quality = settings["thumbnail_quality"] if quality is None else quality

    options = TuningOptions(
        initial_quality=initial_quality,
        min_quality=settings["smart_min_quality"],
        target_psnr=settings["smart_target_psnr"],
        max_iterations=settings["smart_max_iterations"],
        min_savings_percent=settings["smart_min_savings_percent"],
    )

    return settings["smart_compression_enabled"], options


def default_telemetry_path():
    """Where the CLI keeps telemetry between runs."""
    return os.environ.get(
        "SMART_PRESS_TELEMETRY",
        os.path.join(os.path.expanduser("~"), ".smart_press", "telemetry.json"),
    )
