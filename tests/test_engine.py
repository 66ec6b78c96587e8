"""
Tests for the detection engine lifecycle and inference serialization.
"""

import asyncio
import threading
import time

import numpy as np
import pytest

from inference.engine import DetectionEngine, EngineState, create_engine_from_config
from inference.onnx_backend import OnnxBackend, OnnxBackendConfig, _select_providers
from models.config import DetectionConfig
from models.errors import InferenceError, ModelLoadError
from models.frame import FrameData


class FakeBackend:
    """Returns a fixed raw output; records concurrency."""

    def __init__(self, output=None, delay: float = 0.0, error: Exception = None):
        self.input_size = 640
        self.output = output if output is not None else np.zeros((1, 6, 0), dtype=np.float32)
        self.delay = delay
        self.error = error
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._lock = threading.Lock()

    def run(self, tensor):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            self.calls += 1
            if self.error is not None:
                raise self.error
            return self.output
        finally:
            with self._lock:
                self.active -= 1

    def close(self):
        self.closed = True


def _frame(w=1280, h=720, index=1):
    return FrameData.from_numpy(np.zeros((h, w, 3), dtype=np.uint8), timestamp=0.0, frame_index=index)


def _one_box_output():
    out = np.zeros((1, 6, 1), dtype=np.float32)
    out[0, :, 0] = [320, 320, 64, 64, 0.9, 0.1]
    return out


class TestDetectionEngine:
    def test_initialize_and_infer(self):
        backend = FakeBackend(_one_box_output())
        engine = DetectionEngine(lambda: backend, DetectionConfig())

        async def scenario():
            assert await engine.initialize() is True
            return await engine.infer(_frame(index=5))

        result = asyncio.run(scenario())

        assert engine.state == EngineState.READY
        assert len(result) == 1
        assert result.frame_index == 5
        # Scaled to the 1280x720 frame
        assert result.boxes[0].width == pytest.approx(128)

    def test_infer_before_ready_is_empty(self):
        backend = FakeBackend(_one_box_output())
        engine = DetectionEngine(lambda: backend, DetectionConfig())

        result = asyncio.run(engine.infer(_frame()))

        assert len(result) == 0
        assert backend.calls == 0

    def test_load_failure_is_permanent(self):
        attempts = []

        def factory():
            attempts.append(1)
            raise ModelLoadError("Model file not found: missing.onnx")

        engine = DetectionEngine(factory, DetectionConfig())

        async def scenario():
            first = await engine.initialize()
            second = await engine.initialize()
            return first, second, await engine.infer(_frame())

        first, second, result = asyncio.run(scenario())

        assert first is False and second is False
        assert len(attempts) == 1
        assert engine.has_failed
        assert "missing.onnx" in engine.error
        assert len(result) == 0

    def test_unexpected_load_error_fails_engine(self):
        def factory():
            raise RuntimeError("boom")

        engine = DetectionEngine(factory, DetectionConfig())
        asyncio.run(engine.initialize())

        assert engine.state == EngineState.FAILED

    def test_inference_error_yields_empty_result(self):
        backend = FakeBackend(error=InferenceError("bad tensor"))
        engine = DetectionEngine(lambda: backend, DetectionConfig())

        async def scenario():
            await engine.initialize()
            return await engine.infer(_frame())

        result = asyncio.run(scenario())

        assert len(result) == 0
        assert engine.failure_count == 1
        assert engine.is_ready

    def test_layout_mismatch_yields_empty_result(self):
        backend = FakeBackend(np.zeros((1, 9, 3), dtype=np.float32))
        engine = DetectionEngine(lambda: backend, DetectionConfig())

        async def scenario():
            await engine.initialize()
            return await engine.infer(_frame())

        assert len(asyncio.run(scenario())) == 0
        assert engine.failure_count == 1

    def test_inferences_never_overlap(self):
        backend = FakeBackend(_one_box_output(), delay=0.02)
        engine = DetectionEngine(lambda: backend, DetectionConfig())

        async def scenario():
            await engine.initialize()
            return await asyncio.gather(*(engine.infer(_frame(index=i)) for i in range(4)))

        results = asyncio.run(scenario())

        assert backend.calls == 4
        assert backend.max_active == 1
        assert [r.frame_index for r in results] == [0, 1, 2, 3]

    def test_close_releases_backend(self):
        backend = FakeBackend()
        engine = DetectionEngine(lambda: backend, DetectionConfig())

        asyncio.run(engine.initialize())
        engine.close()

        assert backend.closed
        assert engine.state == EngineState.CLOSED
        assert len(asyncio.run(engine.infer(_frame()))) == 0


class TestOnnxBackend:
    def test_missing_model_file(self, tmp_path):
        with pytest.raises(ModelLoadError, match="not found"):
            OnnxBackend(OnnxBackendConfig(model_path=str(tmp_path / "missing.onnx")))

    def test_engine_from_config_fails_on_missing_model(self, tmp_path):
        engine = create_engine_from_config(DetectionConfig(model_path=str(tmp_path / "missing.onnx")))

        asyncio.run(engine.initialize())

        assert engine.has_failed


class TestSelectProviders:
    def test_prefers_cuda(self):
        assert _select_providers(["CUDAExecutionProvider", "CPUExecutionProvider"], None) == [
            "CUDAExecutionProvider",
            "CPUExecutionProvider",
        ]

    def test_cpu_fallback(self):
        assert _select_providers(["CPUExecutionProvider"], None) == ["CPUExecutionProvider"]

    def test_requested_subset(self):
        assert _select_providers(["CPUExecutionProvider"], ["CPUExecutionProvider"]) == ["CPUExecutionProvider"]

    def test_unavailable_request_falls_back(self):
        assert _select_providers(["CPUExecutionProvider"], ["TensorrtExecutionProvider"]) == ["CPUExecutionProvider"]
