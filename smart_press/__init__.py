"""Adaptive image re-encoding with PSNR-guided quality search."""

__version__ = "0.3.0"
