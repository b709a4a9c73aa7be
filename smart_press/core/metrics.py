"""PSNR metric between a lossless reference and a lossy candidate."""

import logging
import math

from PIL import Image, UnidentifiedImageError

from smart_press.config import PSNR_IDENTICAL

logger = logging.getLogger(__name__)


def try_import(module_name):
    """Try to import a module, return None if not available."""
    try:
        module = __import__(module_name)
        return module
    except ImportError:
        return None


# numpy does the pixel arithmetic, without it no metric is available
np = try_import("numpy")
NUMPY_AVAILABLE = np is not None

MAX_PIXEL_VALUE = 255.0


def psnr_from_mse(mse, peak=MAX_PIXEL_VALUE):
    """Convert a mean squared error into PSNR (dB).

    Args:
        mse: Mean squared error between two images
        peak: Largest possible pixel value

    Returns:
        float: PSNR, PSNR_IDENTICAL for identical images, None if invalid
    """
    if mse is None or math.isnan(mse) or mse < 0:
        return None

    if mse == 0:
        return PSNR_IDENTICAL

    psnr = 10.0 * math.log10((peak * peak) / mse)

    if math.isinf(psnr):
        return PSNR_IDENTICAL
    if math.isnan(psnr) or psnr <= 0:
        return None

    return psnr


def _load_rgb(path):
    with Image.open(path) as img:
        img.load()
        return img.convert("RGB")


class PsnrMetric:
    """Computes PSNR between two image files with numpy.

    Args:
        enabled: Set to False to force the metric off (fallback testing)
    """

    name = "psnr"

    def __init__(self, enabled=True):
        self.enabled = enabled

    def can_compute(self):
        """Whether the metric is usable in this runtime."""
        return bool(self.enabled and NUMPY_AVAILABLE)

    def compute(self, reference_path, candidate_path):
        """Measure the candidate against the reference.

        Args:
            reference_path: Lossless reference rendition
            candidate_path: Lossy candidate file

        Returns:
            float: PSNR in dB, or None when it cannot be measured
        """
        if not self.can_compute():
            return None

        try:
            reference = _load_rgb(reference_path)
            candidate = _load_rgb(candidate_path)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logger.warning("PSNR computation failed: %s", e)
            return None

        if reference.size != candidate.size:
            logger.warning(
                "PSNR computation failed: size mismatch %s vs %s",
                reference.size,
                candidate.size,
            )
            return None

        ref_pixels = np.asarray(reference, dtype=np.float64)
        cand_pixels = np.asarray(candidate, dtype=np.float64)

        mse = float(np.mean((ref_pixels - cand_pixels) ** 2))
        psnr = psnr_from_mse(mse)

        if psnr is None:
            logger.warning("PSNR computation returned an invalid value (mse=%s)", mse)

        return psnr
