"""
Live frame source: keeps the latest camera frame available to readers.

A background thread pulls frames from an ObservationSource and stores the
most recent one under a lock. Readers (the capture encoder and the agent
view) get a private copy, so they never see a frame that is being
overwritten.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from models.frame import FrameData
from .base import ObservationSource


class LiveFrameSource:
    """
    Continuously-updating frame holder backed by an ObservationSource.

    Example:
        live = LiveFrameSource(create_source_from_config(cfg["camera"]))
        live.start()          # raises CameraUnavailableError
        if live.is_ready:
            fd = live.current_frame()
        live.stop()
    """

    def __init__(self, source: ObservationSource, read_interval_s: float = 0.0):
        self._source = source
        self._read_interval_s = read_interval_s
        self._lock = threading.Lock()
        self._latest: Optional[FrameData] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def source_id(self) -> str:
        return self._source.source_id

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._latest is not None and self._latest.is_valid

    @property
    def width(self) -> int:
        with self._lock:
            return self._latest.width if self._latest is not None else 0

    @property
    def height(self) -> int:
        with self._lock:
            return self._latest.height if self._latest is not None else 0

    def current_frame(self) -> Optional[FrameData]:
        with self._lock:
            latest = self._latest
        if latest is None:
            return None
        return FrameData(
            frame=latest.frame.copy(),
            width=latest.width,
            height=latest.height,
            timestamp=latest.timestamp,
            frame_index=latest.frame_index,
            source=latest.source,
        )

    def start(self) -> None:
        """Open the underlying source and start the reader thread."""
        if self.is_running:
            return
        self._source.open()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"frames-{self.source_id}", daemon=True)
        self._thread.start()
        logging.info(f"Live frame source started: {self.source_id}")

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._source.close()
        with self._lock:
            self._latest = None
        logging.info(f"Live frame source stopped: {self.source_id}")

    def _run(self) -> None:
        misses = 0
        while not self._stop.is_set():
            frame_data = self._source.read()
            if frame_data is None:
                misses += 1
                if misses % 100 == 1:
                    logging.warning(f"No frame from {self.source_id} (misses={misses})")
                time.sleep(0.05)
                continue
            misses = 0
            with self._lock:
                self._latest = frame_data
            if self._read_interval_s > 0:
                time.sleep(self._read_interval_s)
