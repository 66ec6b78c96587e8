"""
Agent view: the masked live feed shown to the human agent.

The view owns a render loop driven by an explicit scheduler instead of a
display refresh callback, so it runs the same way under a web server, the
operator console, or a test.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from inference.engine import DetectionEngine
from models.detection import DetectionResult
from models.session import OverlayMode
from observation.base import FrameSource
from .renderer import MASKING_OFFLINE_TEXT, MaskingRenderer


class TickScheduler:
    """Fixed-rate tick source. Late ticks are not made up."""

    def __init__(self, rate_hz: float = 30.0):
        if rate_hz <= 0:
            raise ValueError("rate_hz must be positive")
        self.interval = 1.0 / rate_hz
        self._next: Optional[float] = None

    async def next_tick(self) -> None:
        now = time.monotonic()
        if self._next is None or self._next < now:
            self._next = now
        delay = self._next - now
        self._next += self.interval
        await asyncio.sleep(delay)


SurfaceListener = Callable[[np.ndarray], None]


class AgentView:
    """
    Render loop for the masked agent surface.

    Each tick reads the current frame, awaits at most one inference for it,
    and renders with the overlay mode reported by `mode_provider`. The
    inference result is used for that tick only.

    Example:
        view = AgentView(live_source, engine, MaskingRenderer(cfg),
                         mode_provider=lambda: machine.overlay_mode)
        await view.start()
        ...
        await view.stop()
    """

    def __init__(
        self,
        source: FrameSource,
        engine: DetectionEngine,
        renderer: MaskingRenderer,
        mode_provider: Callable[[], OverlayMode],
        scheduler: Optional[TickScheduler] = None,
    ):
        self.source = source
        self.engine = engine
        self.renderer = renderer
        self._mode_provider = mode_provider
        self._scheduler = scheduler or TickScheduler(renderer.config.refresh_hz)
        self._loop_task: Optional[asyncio.Task] = None
        self._init_task: Optional[asyncio.Task] = None
        self._listeners: List[SurfaceListener] = []
        self._surface_lock = threading.Lock()
        self._latest_surface: Optional[np.ndarray] = None
        self.tick_count = 0
        self.last_detections: DetectionResult = DetectionResult.empty()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def model_loading(self) -> bool:
        return self._init_task is not None and not self._init_task.done()

    @property
    def masking_offline(self) -> bool:
        return self.engine.has_failed

    @property
    def warning(self) -> Optional[str]:
        return MASKING_OFFLINE_TEXT if self.masking_offline else None

    def add_listener(self, listener: SurfaceListener) -> None:
        """Register a callback receiving every rendered surface."""
        self._listeners.append(listener)

    def latest_surface(self) -> Optional[np.ndarray]:
        with self._surface_lock:
            if self._latest_surface is None:
                return None
            return self._latest_surface.copy()

    async def start(self) -> None:
        """Begin model loading and the render loop."""
        if self.is_running:
            return
        self._init_task = asyncio.create_task(self.engine.initialize())
        self._loop_task = asyncio.create_task(self._run())
        logging.info("Agent view started")

    async def stop(self) -> None:
        """Cancel the render loop and release the model session."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            try:
                await self._init_task
            except asyncio.CancelledError:
                pass
        self._init_task = None
        self.engine.close()
        logging.info("Agent view stopped")

    async def _run(self) -> None:
        while True:
            await self._scheduler.next_tick()
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logging.error(f"Agent view tick failed: {e}")

    async def tick(self) -> np.ndarray:
        """Render one surface and publish it."""
        self.tick_count += 1
        frame_data = self.source.current_frame() if self.source.is_ready else None

        if frame_data is None or not frame_data.is_valid:
            detections = DetectionResult.empty()
            surface = self.renderer.render(None, None, self._mode_provider(), warning=self.warning)
        else:
            detections = await self.engine.infer(frame_data)
            # Mode is read after inference so a step change during the
            # await is honored on this tick.
            surface = self.renderer.render(
                frame_data.frame, detections, self._mode_provider(), warning=self.warning
            )

        self.last_detections = detections
        self._publish(surface)
        return surface

    def _publish(self, surface: np.ndarray) -> None:
        with self._surface_lock:
            self._latest_surface = surface
        for listener in self._listeners:
            try:
                listener(surface)
            except Exception as e:
                logging.warning(f"Surface listener error: {e}")
