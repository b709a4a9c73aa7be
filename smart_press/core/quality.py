"""Adaptive quality search for lossy and lossless re-encoding.

``SmartCompressor.encode`` looks for the lowest quality whose PSNR against
a lossless reference still meets the target, using a binary search bounded
by ``[min_quality, initial_quality - 1]``. When the metric is unavailable,
or stops working mid-search, it steps the quality down by a fixed amount
for as long as each step saves enough bytes.

Every call starts with a baseline encode at ``initial_quality``. It anchors
the search, seeds the fallback and is the result whenever nothing smaller
is found. Temp files that do not become the result are deleted before the
call returns, whatever the outcome.
"""

import logging

from smart_press.config import FALLBACK_QUALITY_STEP, TuningOptions
from smart_press.core import encoders
from smart_press.core.metrics import PsnrMetric
from smart_press.core.models import (
    STRATEGY_LOSSLESS,
    STRATEGY_PSNR,
    STRATEGY_SIZE,
    EncodeResult,
)
from smart_press.core.telemetry import record_result
from smart_press.errors import CommitError, EncodingError
from smart_press.utils.files import cleanup, move_or_copy

logger = logging.getLogger(__name__)


class _SearchState:
    """Bookkeeping for one encode call."""

    def __init__(self, image, format_name, options, temp_dir):
        self.image = image
        self.format = format_name
        self.options = options
        self.temp_dir = temp_dir
        self.iterations = 0
        self.allocated = []

    def encode(self, quality):
        """Run one trial encode and charge it to the iteration budget."""
        self.iterations += 1
        candidate = encoders.encode_to_temp(
            self.image,
            self.format,
            quality,
            self.temp_dir,
            iteration=self.iterations,
        )
        if candidate is not None:
            self.allocated.append(candidate.path)
        return candidate

    @property
    def budget_left(self):
        return self.iterations < self.options.max_iterations


def size_savings(previous_bytes, new_bytes):
    """Percentage saved going from previous_bytes to new_bytes."""
    if previous_bytes <= 0:
        return 0.0
    return (previous_bytes - new_bytes) / previous_bytes * 100.0


class SmartCompressor:
    """Adaptive encoder driving the candidate encoder and the metric.

    Args:
        metric: Metric engine with can_compute() and compute() (default: PSNR)
        telemetry: Telemetry receiving every successful encode, optional
        temp_dir: Directory for intermediate files (default: system temp)
        supported: Callable telling whether a format can be written
    """

    def __init__(
        self,
        metric=None,
        telemetry=None,
        temp_dir=None,
        supported=encoders.format_supported,
    ):
        self.metric = metric if metric is not None else PsnrMetric()
        self.telemetry = telemetry
        self.temp_dir = temp_dir
        self.supported = supported

    def encode(self, image, format_name, destination, options=None):
        """Encode an already resized image into destination.

        Args:
            image: Image handle exposing copy() and encode()
            format_name: Target format (jpeg, jpg, webp, png, gif)
            destination: Final file path
            options: TuningOptions (default: TuningOptions())

        Returns:
            EncodeResult: What was written

        Raises:
            EncodingError: If the baseline cannot be encoded or the result
                cannot be committed
        """
        options = (options or TuningOptions()).normalized()
        requested = encoders.normalize_format(format_name)
        fmt, substituted = encoders.resolve_format(format_name, self.supported)

        if substituted:
            logger.warning(
                "Encoding %s as %s instead of %s", destination, fmt, format_name
            )

        state = _SearchState(image, fmt, options, self.temp_dir)

        try:
            if fmt in encoders.LOSSLESS_FORMATS:
                winner, baseline = self._encode_lossless(state, destination)
            else:
                winner, baseline = self._encode_lossy(state, destination)

            self._commit(winner, destination, fmt)
        finally:
            cleanup(state.allocated)

        result = EncodeResult(
            quality=winner.quality,
            bytes=winner.bytes,
            baseline_bytes=baseline.bytes,
            metric=winner.metric,
            iterations=state.iterations,
            strategy=winner.strategy,
            path=destination,
            format=fmt,
            requested_format=requested,
        )

        logger.info(
            "Smart compression applied (%s): q=%d, bytes=%d, strategy=%s, iterations=%d",
            fmt,
            result.quality,
            result.bytes,
            result.strategy,
            result.iterations,
        )

        if self.telemetry is not None:
            record_result(self.telemetry, result, options)

        return result

    def run(self, request):
        """Encode an EncodeRequest, see encode()."""
        return self.encode(
            request.image, request.format, request.destination, request.options
        )

    def _encode_lossless(self, state, destination):
        """Single encode for formats without a quality knob."""
        candidate = state.encode(None)
        if candidate is None:
            raise EncodingError(
                f"Unable to encode {state.format.upper()}",
                format=state.format,
                destination=destination,
                step="lossless",
            )

        candidate.quality = 100
        candidate.strategy = STRATEGY_LOSSLESS
        return candidate, candidate

    def _encode_lossy(self, state, destination):
        """Baseline, then metric search or size fallback."""
        options = state.options

        # INIT: the metric capability is checked once per call
        reference = None
        if self.metric.can_compute():
            reference = encoders.create_reference(state.image, state.temp_dir)
            if reference is not None:
                state.allocated.append(reference)
            else:
                logger.warning("No reference image, PSNR search disabled")
        else:
            logger.info("PSNR metric unavailable, using filesize heuristic")

        # BASELINE
        baseline = state.encode(options.initial_quality)
        if baseline is None:
            raise EncodingError(
                "Unable to encode baseline candidate",
                format=state.format,
                destination=destination,
                step="baseline",
            )

        winner = None
        if reference is not None:
            winner = self._metric_search(state, reference, baseline)

        if winner is None:
            winner = self._size_fallback(state, baseline)

        # Never report something larger than the baseline
        if winner is not baseline and winner.bytes > baseline.bytes:
            logger.info(
                "Candidate at quality %d is larger than the baseline, keeping baseline",
                winner.quality,
            )
            winner = baseline

        return winner, baseline

    def _metric_search(self, state, reference, baseline):
        """Binary search for the lowest quality meeting the PSNR target.

        Returns:
            Candidate: The winner, or None to hand over to the size fallback
        """
        options = state.options

        baseline_psnr = self.metric.compute(reference, baseline.path)
        if baseline_psnr is None:
            logger.warning("PSNR failed for the baseline, switching to filesize heuristic")
            return None

        baseline.metric = baseline_psnr
        logger.info("Baseline quality %d, PSNR %.2f", baseline.quality, baseline_psnr)

        baseline.strategy = STRATEGY_PSNR

        # Lower qualities cannot meet a target the ceiling already misses
        if baseline_psnr < options.target_psnr:
            logger.info(
                "Baseline PSNR %.2f is below target %.2f, keeping baseline",
                baseline_psnr,
                options.target_psnr,
            )
            return baseline

        best = baseline
        low = options.min_quality
        high = options.initial_quality - 1

        while low <= high and state.budget_left:
            mid = (low + high) // 2
            if mid == best.quality:
                break

            candidate = state.encode(mid)
            if candidate is None:
                logger.warning("Encoding failure at quality %d, stopping search", mid)
                break

            psnr = self.metric.compute(reference, candidate.path)
            if psnr is None:
                logger.warning(
                    "PSNR failed at quality %d, switching to filesize heuristic", mid
                )
                encoders.discard(candidate)
                if best is not baseline:
                    encoders.discard(best)
                return None

            logger.debug("Quality %d, PSNR %.2f, %d bytes", mid, psnr, candidate.bytes)

            if psnr >= options.target_psnr:
                if best is not baseline:
                    encoders.discard(best)
                candidate.metric = psnr
                candidate.strategy = STRATEGY_PSNR
                best = candidate
                high = mid - 1
            else:
                encoders.discard(candidate)
                low = mid + 1

        return best

    def _size_fallback(self, state, seed):
        """Step the quality down while each step saves enough bytes."""
        options = state.options

        best = seed
        best.strategy = STRATEGY_SIZE
        quality = seed.quality

        while state.budget_left and quality - FALLBACK_QUALITY_STEP >= options.min_quality:
            quality -= FALLBACK_QUALITY_STEP

            candidate = state.encode(quality)
            if candidate is None:
                logger.warning("Fallback failed at quality %d", quality)
                break

            reduction = size_savings(best.bytes, candidate.bytes)
            logger.debug(
                "Fallback quality %d, %d bytes, reduction %.2f%%",
                quality,
                candidate.bytes,
                reduction,
            )

            if reduction < options.min_savings_percent:
                encoders.discard(candidate)
                break

            if best is not seed:
                encoders.discard(best)
            candidate.strategy = STRATEGY_SIZE
            best = candidate

        return best

    def _commit(self, winner, destination, fmt):
        try:
            move_or_copy(winner.path, destination, overwrite=True)
        except (CommitError, OSError) as e:
            raise EncodingError(
                f"Unable to move optimized file to destination: {e}",
                format=fmt,
                destination=destination,
                step="commit",
            ) from e
