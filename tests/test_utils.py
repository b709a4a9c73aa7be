"""Tests for image and validation helpers."""

import pytest
from PIL import Image

from smart_press.utils.image import (
    PillowImage,
    create_gradient_image,
    format_supported,
    load_image,
    resize_image,
)
from smart_press.utils.validation import (
    parse_dimensions,
    validate_dimensions_format,
    validate_psnr_target,
)


@pytest.mark.parametrize(
    "value, expected",
    [("800x600", True), ("800x", True), ("x600", True), ("x", False), ("axb", False), ("", False), ("1x2x3", False)],
)
def test_validate_dimensions_format(value, expected):
    assert validate_dimensions_format(value) is expected


def test_parse_dimensions():
    assert parse_dimensions("800X600") == (800, 600)
    assert parse_dimensions("800x") == (800, 0)

    with pytest.raises(ValueError):
        parse_dimensions("big")


def test_validate_psnr_target():
    assert validate_psnr_target("41.5") == 41.5

    for bad in (0, -1, float("inf")):
        with pytest.raises(ValueError):
            validate_psnr_target(bad)


def test_format_supported():
    assert format_supported("jpeg")
    assert format_supported("png")
    assert not format_supported("bmp")


def test_resize_fit_keeps_aspect(gradient_image):
    assert resize_image(gradient_image, 48, 0).size == (48, 32)
    assert resize_image(gradient_image, 0, 16).size == (24, 16)
    assert resize_image(gradient_image, 48, 48, crop=False).size == (48, 32)


def test_resize_crop_fills_box(gradient_image):
    assert resize_image(gradient_image, 30, 30, crop=True).size == (30, 30)


def test_resize_without_dimensions_copies(gradient_image):
    resized = resize_image(gradient_image, 0, 0)

    assert resized.size == gradient_image.size
    assert resized.image is not gradient_image.image


def test_load_image_applies_orientation(tmp_path):
    path = tmp_path / "rotated.jpg"
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90 degrees clockwise
    Image.new("RGB", (40, 20), "white").save(path, exif=exif)

    assert load_image(str(path)).size == (20, 40)


def test_load_image_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / "nope.png"))


def test_create_gradient_image_is_deterministic():
    first = create_gradient_image(16, 8, noise=5, seed=1)
    second = create_gradient_image(16, 8, noise=5, seed=1)

    assert isinstance(first, PillowImage)
    assert first.size == (16, 8)
    assert first.mode == "RGB"
    assert first.image.tobytes() == second.image.tobytes()
