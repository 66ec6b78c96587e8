"""
Observation interfaces.

Two contracts live here:

- ObservationSource: a pull-based camera/video reader (open, read, close).
- FrameSource: the live-feed view consumed by the session pipeline. It only
  reports readiness and native dimensions, and hands out a copy of the
  current frame. Nothing else is assumed about the camera.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Protocol

import numpy as np

from models.frame import FrameData


class FrameSource(Protocol):
    @property
    def is_ready(self) -> bool:
        ...

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def current_frame(self) -> Optional[FrameData]:
        """Return a private copy of the latest frame, or None."""
        ...


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier for this source (e.g., "kiosk-cam").
        resolution: Requested resolution as (width, height). None = device default.
        fps: Requested frames per second. None = device default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for camera/video readers.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the device
        3. Call read() repeatedly to get frames
        4. Call close() to release the device

    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open the device.

        Raises:
            CameraUnavailableError: If the device cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Read the next frame, or None when no frame is available."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call multiple times."""
        pass

    def _make_frame(self, frame: np.ndarray, timestamp: float) -> FrameData:
        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=timestamp,
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
