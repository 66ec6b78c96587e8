"""
Tests for the agent view render loop.
"""

import asyncio

import numpy as np
import pytest

from inference.engine import DetectionEngine
from masking.agent_view import AgentView, TickScheduler
from masking.renderer import COLOR_PLACEHOLDER_BG, MaskingRenderer
from models.config import DetectionConfig, MaskingConfig
from models.detection import BoundingBox, DetectionResult
from models.errors import ModelLoadError
from models.session import OverlayMode
from conftest import FakeFrameSource


class FakeEngine:
    def __init__(self, result=None, fail_load=False):
        self.result = result or DetectionResult.empty()
        self.fail_load = fail_load
        self.has_failed = False
        self.initialized = False
        self.closed = False
        self.infer_calls = 0

    async def initialize(self):
        self.initialized = True
        self.has_failed = self.fail_load
        return not self.fail_load

    async def infer(self, frame_data):
        self.infer_calls += 1
        return self.result

    def close(self):
        self.closed = True


def _view(source, engine, mode=OverlayMode.FACE):
    return AgentView(
        source,
        engine,
        MaskingRenderer(MaskingConfig()),
        mode_provider=lambda: mode,
        scheduler=TickScheduler(200),
    )


class TestTickScheduler:
    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            TickScheduler(0)

    def test_interval(self):
        assert TickScheduler(20).interval == 0.05


class TestAgentViewTick:
    def test_placeholder_without_frame(self):
        view = _view(FakeFrameSource(None), FakeEngine())

        surface = asyncio.run(view.tick())

        assert tuple(surface[0, 0]) == COLOR_PLACEHOLDER_BG
        assert view.tick_count == 1

    def test_renders_detections_for_this_tick(self, checkerboard):
        engine = FakeEngine(DetectionResult(boxes=(BoundingBox(0, 0, 20, 20, label=1),)))
        view = _view(FakeFrameSource(checkerboard), engine)

        surface = asyncio.run(view.tick())

        assert (surface[0:20, 0:20] == 0).all()
        assert engine.infer_calls == 1
        assert len(view.last_detections) == 1

    def test_latest_surface_is_copy(self, checkerboard):
        view = _view(FakeFrameSource(checkerboard), FakeEngine())
        asyncio.run(view.tick())

        first = view.latest_surface()
        first[:] = 9

        assert not (view.latest_surface() == 9).all()

    def test_listener_receives_surface(self, checkerboard):
        seen = []
        view = _view(FakeFrameSource(checkerboard), FakeEngine())
        view.add_listener(lambda s: seen.append(s.shape))

        asyncio.run(view.tick())

        assert seen == [checkerboard.shape]

    def test_masking_offline_banner(self, checkerboard):
        engine = FakeEngine()
        engine.has_failed = True
        view = _view(FakeFrameSource(checkerboard), engine)

        surface = asyncio.run(view.tick())

        assert view.masking_offline
        assert view.warning is not None
        assert not np.array_equal(surface, checkerboard)


class TestAgentViewLoop:
    def test_start_runs_ticks_and_stop_closes_engine(self, checkerboard):
        engine = FakeEngine()
        view = _view(FakeFrameSource(checkerboard), engine)

        async def scenario():
            await view.start()
            await asyncio.sleep(0.1)
            running = view.is_running
            await view.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert engine.initialized
        assert engine.closed
        assert view.tick_count > 1
        assert not view.is_running

    def test_load_failure_keeps_loop_running(self, checkerboard):
        engine = FakeEngine(fail_load=True)
        view = _view(FakeFrameSource(checkerboard), engine)

        async def scenario():
            await view.start()
            await asyncio.sleep(0.05)
            offline = view.masking_offline
            await view.stop()
            return offline

        assert asyncio.run(scenario()) is True
        assert view.tick_count > 0


class TestMaskingFailSafe:
    def test_failed_model_never_reveals_id_over_many_ticks(self, checkerboard):
        def missing_model():
            raise ModelLoadError("Model file not found")

        engine = DetectionEngine(missing_model, DetectionConfig())
        view = _view(FakeFrameSource(checkerboard), engine, mode=OverlayMode.ID)
        surfaces = []
        view.add_listener(surfaces.append)

        async def scenario():
            await view.start()
            while not engine.has_failed:
                await asyncio.sleep(0.005)
            failed_at = len(surfaces)
            while len(surfaces) < failed_at + 5:
                await asyncio.sleep(0.01)
            offline = view.masking_offline
            await view.stop()
            return offline

        assert asyncio.run(scenario()) is True
        assert len(surfaces) >= 5
        x1, y1, x2, y2 = view.renderer.reveal_rect(320, 240)
        for surface in surfaces:
            reveal = surface[y1:y2, x1:x2]
            assert not (reveal.min() == 0 and reveal.max() == 255)
            # Blurred and dimmed away from the centered text and the banner
            assert surface[0:20, 0:20].max() < 200
