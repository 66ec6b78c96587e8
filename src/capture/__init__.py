"""
Still capture from the live feed.
"""

from .encoder import capture_frame, DEFAULT_JPEG_QUALITY

__all__ = ["capture_frame", "DEFAULT_JPEG_QUALITY"]
