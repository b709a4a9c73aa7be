"""Exceptions raised by smart_press."""


class SmartPressError(RuntimeError):
    """Base class for smart_press failures."""


class CommitError(SmartPressError):
    """A finished candidate could not be placed at its destination."""


class EncodingError(SmartPressError):
    """An encode call failed and produced no output.

    Args:
        message: Human readable description
        format: Format that was being encoded
        destination: Destination path of the encode
        step: Step that failed (baseline, lossless, commit, direct)
    """

    def __init__(self, message, format=None, destination=None, step=None):
        super().__init__(message)
        self.format = format
        self.destination = destination
        self.step = step

    def __str__(self):
        base = super().__str__()
        details = [
            f"{name}={value}"
            for name, value in (
                ("step", self.step),
                ("format", self.format),
                ("destination", self.destination),
            )
            if value is not None
        ]
        if details:
            return f"{base} ({', '.join(details)})"
        return base
