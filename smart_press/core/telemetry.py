"""Aggregate statistics over completed encodes.

The aggregate lives in a key/value option store so it can outlive the
process (``JsonOptionStore``) or stay in memory (``MemoryOptionStore``).
Every ``record`` is a read-modify-write of the whole blob done through
the store's ``update``, which holds the store's lock (a file lock for
``JsonOptionStore``) across the read and the write.
"""

import copy
import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from smart_press.core.models import STRATEGIES, STRATEGY_DIRECT

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None

try:
    import msvcrt
except ImportError:
    msvcrt = None

logger = logging.getLogger(__name__)

OPTION_KEY = "smart_press_compression_metrics"


class MemoryOptionStore:
    """Option store kept in a dict."""

    def __init__(self):
        self._values = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            return copy.deepcopy(self._values.get(key, default))

    def set(self, key, value):
        with self._lock:
            self._values[key] = copy.deepcopy(value)

    def update(self, key, fn):
        """Replace the value under ``key`` with ``fn(current)`` atomically."""
        with self._lock:
            value = fn(copy.deepcopy(self._values.get(key)))
            self._values[key] = copy.deepcopy(value)
            return value


class JsonOptionStore:
    """Option store persisted to a JSON file.

    Writes go to a temp file next to the target and are renamed into
    place, so readers never see a partial file. Writers hold an exclusive
    lock on a ``.lock`` file beside the target for the whole
    read-modify-write, which serializes stores in other threads and
    processes sharing the path.

    Args:
        path: JSON file holding every option
    """

    def __init__(self, path):
        self.path = os.fspath(path)
        self.lock_path = self.path + ".lock"

    @contextmanager
    def _locked(self):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        with open(self.lock_path, "a+b") as handle:
            if msvcrt is not None:
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
            else:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                if msvcrt is not None:
                    handle.seek(0)
                    msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
                else:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _read_all(self):
        if not os.path.isfile(self.path):
            return {}

        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning("Could not read option store %s: %s", self.path, e)
            return {}

        return data if isinstance(data, dict) else {}

    def _write_all(self, data):
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, staging = tempfile.mkstemp(prefix=".options_", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(staging, self.path)
        except OSError:
            if os.path.exists(staging):
                os.remove(staging)
            raise

    def get(self, key, default=None):
        return self._read_all().get(key, default)

    def set(self, key, value):
        self.update(key, lambda _current: value)

    def update(self, key, fn):
        """Replace the value under ``key`` with ``fn(current)``.

        The read, the call and the write all happen under the file lock.

        Returns:
            The new value
        """
        with self._locked():
            data = self._read_all()
            value = fn(data.get(key))
            data[key] = value
            self._write_all(data)
        return value


def empty_bucket():
    """Running sums for one group of events."""
    return {
        "count": 0,
        "bytes": 0,
        "iterations_sum": 0,
        "quality_sum": 0,
        "quality_count": 0,
        "psnr_sum": 0.0,
        "psnr_count": 0,
        "baseline_sum": 0,
        "baseline_count": 0,
        "savings_sum": 0,
    }


def empty_store():
    """Shape of a store with no recorded events."""
    return {
        "totals": empty_bucket(),
        "formats": {},
        "strategies": {strategy: 0 for strategy in STRATEGIES},
        "densities": {},
        "extras": {
            "last_event": None,
            "last_updated": None,
            "upscaled_count": 0,
        },
    }


@dataclass
class TelemetryEvent:
    """Outcome of one encode as seen by telemetry."""

    format: str
    strategy: str = STRATEGY_DIRECT
    quality: Optional[int] = None
    bytes: int = 0
    baseline_bytes: Optional[int] = None
    psnr: Optional[float] = None
    iterations: int = 0
    context: dict = field(default_factory=dict)

    def __post_init__(self):
        self.format = str(self.format or "").lower()
        self.strategy = str(self.strategy or STRATEGY_DIRECT).lower()
        self.bytes = max(0, int(self.bytes or 0))
        self.iterations = max(0, int(self.iterations or 0))
        if self.baseline_bytes is not None:
            self.baseline_bytes = max(0, int(self.baseline_bytes))
        if not isinstance(self.context, dict):
            self.context = {}

    @classmethod
    def from_mapping(cls, payload):
        """Build an event from a loose mapping, coercing the values."""
        quality = payload.get("quality")
        psnr = payload.get("psnr")
        context = payload.get("context")

        return cls(
            format=payload.get("format"),
            strategy=payload.get("strategy"),
            quality=int(quality) if quality is not None else None,
            bytes=payload.get("bytes"),
            baseline_bytes=payload.get("baseline_bytes"),
            psnr=float(psnr) if psnr is not None else None,
            iterations=payload.get("iterations"),
            context=dict(context) if isinstance(context, dict) else {},
        )


def _add_to_bucket(bucket, event):
    bucket["count"] += 1
    bucket["bytes"] += event.bytes
    bucket["iterations_sum"] += event.iterations

    if event.quality is not None:
        bucket["quality_sum"] += event.quality
        bucket["quality_count"] += 1

    if event.psnr is not None:
        bucket["psnr_sum"] += event.psnr
        bucket["psnr_count"] += 1

    if event.baseline_bytes is not None and event.baseline_bytes > 0:
        bucket["baseline_sum"] += event.baseline_bytes
        bucket["baseline_count"] += 1
        bucket["savings_sum"] += max(0, event.baseline_bytes - event.bytes)


def _average(total, count):
    if not count:
        return None
    return total / count


def savings_percent(baseline_sum, savings_sum):
    """Share of the baseline bytes that was saved, None without a baseline."""
    if baseline_sum <= 0:
        return None
    return (savings_sum / baseline_sum) * 100.0


def _summarize_bucket(bucket):
    return {
        "average_quality": _average(bucket["quality_sum"], bucket["quality_count"]),
        "average_iterations": _average(bucket["iterations_sum"], bucket["count"]),
        "average_psnr": _average(bucket["psnr_sum"], bucket["psnr_count"]),
        "average_savings_percent": savings_percent(
            bucket["baseline_sum"], bucket["savings_sum"]
        ),
    }


def _coerce_store(value):
    """Valid aggregate built from whatever the store holds."""
    if not isinstance(value, dict) or "totals" not in value:
        return empty_store()

    # Fill in sections missing from older payloads
    metrics = empty_store()
    for section, content in value.items():
        if isinstance(metrics.get(section), dict) and isinstance(content, dict):
            metrics[section].update(content)
        else:
            metrics[section] = content
    return metrics


def _apply_event(metrics, event, now):
    context = event.context

    _add_to_bucket(metrics["totals"], event)

    strategies = metrics["strategies"]
    strategies[event.strategy] = strategies.get(event.strategy, 0) + 1

    bucket = metrics["formats"].setdefault(event.format, empty_bucket())
    _add_to_bucket(bucket, event)

    if context.get("density"):
        density = str(context["density"])
        metrics["densities"][density] = metrics["densities"].get(density, 0) + 1

    extras = metrics["extras"]
    if context.get("upscaled"):
        extras["upscaled_count"] += 1

    extras["last_event"] = {
        "format": event.format,
        "strategy": event.strategy,
        "quality": event.quality,
        "bytes": event.bytes,
        "baseline_bytes": event.baseline_bytes,
        "psnr": event.psnr,
        "iterations": event.iterations,
        "size_name": context.get("size_name"),
        "width": context.get("width"),
        "height": context.get("height"),
        "density": context.get("density"),
        "timestamp": now,
    }
    extras["last_updated"] = now
    return metrics


class Telemetry:
    """Running aggregate of encode outcomes.

    Args:
        store: Option store holding the aggregate (default: in memory)
        key: Option key of the aggregate
        clock: Callable returning the current UNIX time
    """

    def __init__(self, store=None, key=OPTION_KEY, clock=time.time):
        self.store = store if store is not None else MemoryOptionStore()
        self.key = key
        self.clock = clock
        self._lock = threading.Lock()

    def _read(self):
        return _coerce_store(self.store.get(self.key))

    def init_empty(self):
        """Make sure the store holds a valid aggregate."""
        with self._lock:
            self.store.update(self.key, _coerce_store)

    def record(self, event):
        """Add one encode outcome to the aggregate.

        Args:
            event: TelemetryEvent or mapping with the same keys

        Returns:
            bool: False if the event was skipped
        """
        if not isinstance(event, TelemetryEvent):
            event = TelemetryEvent.from_mapping(event or {})

        if not event.format:
            logger.warning("Telemetry skipped record due to missing format")
            return False

        with self._lock:
            now = int(self.clock())
            self.store.update(
                self.key, lambda value: _apply_event(_coerce_store(value), event, now)
            )

        return True

    def summarize(self):
        """Derive averages from the running sums.

        Returns:
            dict: Summary with None for every average lacking data
        """
        with self._lock:
            metrics = self._read()

        totals = metrics["totals"]
        summary = {"total_operations": totals["count"]}
        summary.update(_summarize_bucket(totals))
        summary.update(
            {
                "strategies": dict(metrics["strategies"]),
                "formats": {},
                "densities": dict(metrics["densities"]),
                "last_event": metrics["extras"]["last_event"],
                "last_updated": metrics["extras"]["last_updated"],
                "upscaled_count": metrics["extras"]["upscaled_count"],
            }
        )

        for fmt, bucket in metrics["formats"].items():
            entry = {"count": bucket["count"]}
            entry.update(_summarize_bucket(bucket))
            summary["formats"][fmt] = entry

        return summary

    def clear(self):
        """Reset the aggregate to its empty shape."""
        with self._lock:
            self.store.update(self.key, lambda _value: empty_store())

    def snapshot(self):
        """Copy of the raw aggregate."""
        with self._lock:
            return copy.deepcopy(self._read())


def record_result(telemetry, result, options):
    """Record an EncodeResult together with the options' context.

    Args:
        telemetry: Telemetry instance
        result: EncodeResult to record
        options: TuningOptions of the encode

    Returns:
        bool: Whether the event was recorded
    """
    event = TelemetryEvent(
        format=result.format,
        strategy=result.strategy,
        quality=result.quality,
        bytes=result.bytes,
        baseline_bytes=result.baseline_bytes,
        psnr=result.metric,
        iterations=result.iterations,
        context=options.telemetry_context(),
    )
    recorded = telemetry.record(event)

    if recorded:
        logger.info(
            "Telemetry recorded: format=%s strategy=%s quality=%s bytes=%d baseline=%s iterations=%d psnr=%s",
            result.format,
            result.strategy,
            result.quality,
            result.bytes,
            result.baseline_bytes,
            result.iterations,
            f"{result.metric:.2f}" if result.metric is not None else "n/a",
        )

    return recorded
