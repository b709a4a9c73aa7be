"""Shared fixtures for smart_press tests."""

import pytest

from smart_press.core.quality import SmartCompressor
from smart_press.core.telemetry import Telemetry
from smart_press.utils.image import create_gradient_image

from tests.fakes import FakeMetric


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def destination(tmp_path):
    return str(tmp_path / "out" / "image.jpg")


@pytest.fixture
def telemetry():
    return Telemetry()


@pytest.fixture
def make_compressor(temp_dir, telemetry):
    """Build a SmartCompressor writing its temp files under temp_dir."""

    def factory(metric=None, supported=lambda name: True, **kwargs):
        return SmartCompressor(
            metric=metric if metric is not None else FakeMetric(available=False),
            telemetry=kwargs.pop("telemetry", telemetry),
            temp_dir=str(temp_dir),
            supported=supported,
        )

    return factory


@pytest.fixture
def gradient_image():
    return create_gradient_image(96, 64, noise=12, seed=3)


@pytest.fixture
def source_jpeg(tmp_path, gradient_image):
    """A real JPEG on disk."""
    path = tmp_path / "photo.jpg"
    gradient_image.image.save(path, format="JPEG", quality=95)
    return str(path)
