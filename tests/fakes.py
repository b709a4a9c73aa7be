"""Deterministic stand-ins for the image handle and the metric."""

import os


class FakeImage:
    """Image handle whose encoded size is a function of the quality.

    Every encode writes a small header naming format and quality, padded
    to the size returned by ``size_for``. Qualities listed in ``failing``
    raise instead of encoding.
    """

    def __init__(self, size_for=None, failing=(), lossless_bytes=5000):
        self.size_for = size_for or (lambda quality: quality * 1000)
        self.failing = set(failing)
        self.lossless_bytes = lossless_bytes
        self.calls = []

    def copy(self):
        return self

    def encode(self, format_name, quality=None):
        self.calls.append((format_name, quality))

        if quality in self.failing:
            raise OSError(f"encoder exploded at {quality}")

        header = f"{format_name}:{quality}|".encode()
        length = self.lossless_bytes if quality is None else self.size_for(quality)
        return header + b"\0" * max(0, length - len(header))

    def trial_calls(self):
        """Encodes other than the PNG reference."""
        return [call for call in self.calls if call[1] is not None]


def quality_of(path):
    """Read the quality back from a file written by FakeImage."""
    with open(path, "rb") as handle:
        header = handle.read(32).split(b"|", 1)[0].decode()
    value = header.split(":", 1)[1]
    return None if value == "None" else int(value)


class FakeMetric:
    """PSNR as a function of the candidate quality.

    Args:
        psnr_for: Callable quality -> PSNR
        fail_on_call: 1-based compute() call that returns None
        available: What can_compute() reports
    """

    name = "psnr"

    def __init__(self, psnr_for=None, fail_on_call=None, available=True):
        self.psnr_for = psnr_for or (lambda quality: 30.0 + quality * 0.15)
        self.fail_on_call = fail_on_call
        self.available = available
        self.calls = 0

    def can_compute(self):
        return self.available

    def compute(self, reference_path, candidate_path):
        self.calls += 1
        if self.fail_on_call is not None and self.calls >= self.fail_on_call:
            return None
        return self.psnr_for(quality_of(candidate_path))


def leftovers(directory):
    """Files remaining in a temp directory."""
    directory = os.fspath(directory)
    if not os.path.isdir(directory):
        return []
    return sorted(os.listdir(directory))

