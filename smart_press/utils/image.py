"""Utilities for image manipulation."""

import io

from PIL import Image, ImageOps, features

from smart_press.utils.validation import validate_file_exists

# Pillow save format for each encoder format
PILLOW_FORMATS = {
    "jpeg": "JPEG",
    "webp": "WEBP",
    "png": "PNG",
    "gif": "GIF",
}

# Pillow feature flag needed to write a format, if any
PILLOW_FEATURES = {
    "webp": "webp",
}


def format_supported(format_name):
    """Check whether the installed Pillow can write a format.

    Args:
        format_name: Encoder format name (jpeg, webp, png, gif)

    Returns:
        bool: True if the format can be written
    """
    if format_name not in PILLOW_FORMATS:
        return False

    feature = PILLOW_FEATURES.get(format_name)
    if feature is None:
        return True

    return bool(features.check(feature))


class PillowImage:
    """Image handle backed by a Pillow image.

    Exposes the two capabilities the encoder needs: a private working copy
    and an in-memory encode. The wrapped image is never modified.
    """

    def __init__(self, image):
        self._image = image

    @property
    def size(self):
        return self._image.size

    @property
    def mode(self):
        return self._image.mode

    @property
    def image(self):
        return self._image

    def copy(self):
        """Return an independent handle for one trial encode."""
        return PillowImage(self._image.copy())

    def encode(self, format_name, quality=None):
        """Encode the image into bytes.

        Args:
            format_name: Encoder format name (jpeg, webp, png, gif)
            quality: Quality 0-100 for lossy formats, ignored otherwise

        Returns:
            bytes: Encoded image

        Raises:
            ValueError: If the format is unknown
            OSError: If Pillow fails to encode
        """
        if format_name not in PILLOW_FORMATS:
            raise ValueError(f"Unsupported format: {format_name}")

        image = self._image
        save_kw = {"format": PILLOW_FORMATS[format_name]}

        if format_name == "jpeg":
            # JPEG has no alpha or palette
            if image.mode not in ("RGB", "L", "CMYK"):
                image = image.convert("RGB")
            save_kw.update({"quality": _quality(quality), "optimize": True})
        elif format_name == "webp":
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
            save_kw.update({"quality": _quality(quality), "method": 4})
        elif format_name == "png":
            save_kw.update({"optimize": True})
        elif format_name == "gif":
            if image.mode not in ("P", "L"):
                image = image.convert("RGB").quantize(colors=256)

        buffer = io.BytesIO()
        image.save(buffer, **save_kw)
        return buffer.getvalue()


def _quality(quality):
    if quality is None:
        return 85
    return max(0, min(100, int(quality)))


@validate_file_exists
def load_image(input_path):
    """Open an image file and return a handle with EXIF orientation applied.

    Args:
        input_path: Path to the image

    Returns:
        PillowImage: Loaded image
    """
    with Image.open(input_path) as img:
        img.load()
        image = ImageOps.exif_transpose(img)

    return PillowImage(image)


def resize_image(image, width, height, crop=False):
    """Resize an image handle to the requested box.

    Args:
        image: PillowImage to resize
        width: Target width (0 to derive from height)
        height: Target height (0 to derive from width)
        crop: Cover and center-crop the box instead of fitting inside it

    Returns:
        PillowImage: New resized handle
    """
    source = image.image
    src_width, src_height = source.size

    if not width and not height:
        return image.copy()

    if crop and width and height:
        resized = ImageOps.fit(source, (width, height), method=Image.LANCZOS)
        return PillowImage(resized)

    # Fit inside the box while keeping the aspect ratio
    if not width:
        width = max(1, round(src_width * height / src_height))
    if not height:
        height = max(1, round(src_height * width / src_width))

    scale = min(width / src_width, height / src_height)
    target = (max(1, round(src_width * scale)), max(1, round(src_height * scale)))

    return PillowImage(source.resize(target, Image.LANCZOS))


def create_gradient_image(width, height, noise=0, seed=0):
    """Create a gradient test image.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        noise: Amplitude of random noise added on top of the gradient
        seed: Seed for the noise generator

    Returns:
        PillowImage: Generated image
    """
    import numpy as np

    x = np.linspace(0, 255, width)
    y = np.linspace(0, 255, height)
    xx, yy = np.meshgrid(x, y)

    pixels = np.stack([xx, yy, (xx + yy) / 2], axis=-1)

    if noise:
        rng = np.random.default_rng(seed)
        pixels = pixels + rng.uniform(-noise, noise, size=pixels.shape)

    pixels = np.clip(pixels, 0, 255).astype(np.uint8)
    return PillowImage(Image.fromarray(pixels))
