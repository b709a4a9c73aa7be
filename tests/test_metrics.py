"""Tests for the PSNR metric."""

import math

import pytest
from PIL import Image

from smart_press.config import PSNR_IDENTICAL
from smart_press.core.metrics import PsnrMetric, psnr_from_mse


def save(image, path, **kwargs):
    image.image.save(path, **kwargs)
    return str(path)


def test_psnr_from_mse():
    assert psnr_from_mse(0) == PSNR_IDENTICAL
    assert psnr_from_mse(255.0 ** 2) is None
    assert psnr_from_mse(-1) is None
    assert psnr_from_mse(float("nan")) is None
    assert psnr_from_mse(1.0) == pytest.approx(20 * math.log10(255))


def test_identical_images(tmp_path, gradient_image):
    reference = save(gradient_image, tmp_path / "ref.png")
    candidate = save(gradient_image, tmp_path / "copy.png")

    assert PsnrMetric().compute(reference, candidate) == PSNR_IDENTICAL


def test_lossy_candidate_scores_lower(tmp_path, gradient_image):
    reference = save(gradient_image, tmp_path / "ref.png")
    good = save(gradient_image, tmp_path / "good.jpg", quality=95)
    bad = save(gradient_image, tmp_path / "bad.jpg", quality=10)

    metric = PsnrMetric()
    good_psnr = metric.compute(reference, good)
    bad_psnr = metric.compute(reference, bad)

    assert 0 < bad_psnr < good_psnr < PSNR_IDENTICAL


def test_size_mismatch_returns_none(tmp_path, gradient_image, caplog):
    reference = save(gradient_image, tmp_path / "ref.png")
    other = tmp_path / "other.png"
    Image.new("RGB", (10, 10)).save(other)

    assert PsnrMetric().compute(reference, str(other)) is None
    assert "size mismatch" in caplog.text


def test_unreadable_file_returns_none(tmp_path, gradient_image):
    reference = save(gradient_image, tmp_path / "ref.png")
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not an image")

    assert PsnrMetric().compute(reference, str(broken)) is None
    assert PsnrMetric().compute(reference, str(tmp_path / "missing.jpg")) is None


def test_disabled_metric(tmp_path, gradient_image):
    reference = save(gradient_image, tmp_path / "ref.png")
    metric = PsnrMetric(enabled=False)

    assert not metric.can_compute()
    assert metric.compute(reference, reference) is None
