"""
Observation layer: camera readers and the live frame holder.

The session pipeline only depends on the FrameSource contract; the camera
itself is reached through an ObservationSource.
"""

from .base import FrameSource, ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, create_source_from_config
from .live import LiveFrameSource

__all__ = [
    "FrameSource",
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
    "LiveFrameSource",
]
