"""Core functionality for smart_press."""

from smart_press.errors import SmartPressError, EncodingError, CommitError

from smart_press.core.models import (
    EncodeRequest,
    EncodeResult,
    Candidate,
)

from smart_press.core.encoders import (
    resolve_format,
    get_extension,
    is_lossless,
    encode_to_temp,
    create_reference,
)

from smart_press.core.metrics import PsnrMetric

from smart_press.core.quality import SmartCompressor

from smart_press.core.telemetry import (
    Telemetry,
    TelemetryEvent,
    MemoryOptionStore,
    JsonOptionStore,
)

from smart_press.core.compression import (
    destination_for,
    optimize_and_save,
    generate_sizes,
)

# Define what's available when doing "from smart_press.core import *"
__all__ = [
    # Errors
    "SmartPressError",
    "EncodingError",
    "CommitError",
    # Data model
    "EncodeRequest",
    "EncodeResult",
    "Candidate",
    # Encoders
    "resolve_format",
    "get_extension",
    "is_lossless",
    "encode_to_temp",
    "create_reference",
    # Metric
    "PsnrMetric",
    # Adaptive search
    "SmartCompressor",
    # Telemetry
    "Telemetry",
    "TelemetryEvent",
    "MemoryOptionStore",
    "JsonOptionStore",
    # Thumbnail workflow
    "destination_for",
    "optimize_and_save",
    "generate_sizes",
]
