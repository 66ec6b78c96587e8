"""
Detection engine: one model session per agent view, one inference at a time.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from models.config import DetectionConfig
from models.detection import DetectionResult
from models.errors import InferenceError, ModelLoadError
from models.frame import FrameData
from .backend import InferenceBackend
from .onnx_backend import OnnxBackend, OnnxBackendConfig
from .yolo import decode_output, preprocess


class EngineState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class DetectionEngine:
    """
    Async wrapper around an inference backend.

    - initialize() loads the model once. A failure is permanent for this
      engine: it moves to FAILED and every later infer() returns an empty
      result.
    - infer() serializes calls with a lock, so two inferences never run
      concurrently. The blocking runtime call runs in a worker thread.
    - A failed inference cycle is logged and yields an empty result.

    Example:
        engine = DetectionEngine(lambda: OnnxBackend(cfg), detection_cfg)
        await engine.initialize()
        result = await engine.infer(frame_data)
    """

    def __init__(self, backend_factory: Callable[[], InferenceBackend], config: DetectionConfig):
        self._backend_factory = backend_factory
        self.config = config
        self._backend: Optional[InferenceBackend] = None
        self._state = EngineState.IDLE
        self._error: Optional[str] = None
        self._lock = asyncio.Lock()
        self.inference_count = 0
        self.failure_count = 0

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == EngineState.READY

    @property
    def has_failed(self) -> bool:
        return self._state == EngineState.FAILED

    @property
    def error(self) -> Optional[str]:
        return self._error

    async def initialize(self) -> bool:
        """Load the model. Only the first call does any work."""
        if self._state != EngineState.IDLE:
            return self.is_ready

        self._state = EngineState.LOADING
        logging.info("Loading detection model...")
        try:
            backend = await asyncio.to_thread(self._backend_factory)
        except ModelLoadError as e:
            self._fail(str(e))
            return False
        except Exception as e:
            self._fail(f"Unexpected error loading model: {e}")
            return False

        if self._state == EngineState.CLOSED:
            # Torn down while loading
            backend.close()
            return False

        self._backend = backend
        self._state = EngineState.READY
        logging.info("Detection model loaded")
        return True

    def _fail(self, message: str) -> None:
        self._state = EngineState.FAILED
        self._error = message
        logging.error(f"Detection model load failed, masking disabled: {message}")

    async def infer(self, frame_data: FrameData) -> DetectionResult:
        """Run one inference cycle on a frame; boxes are in frame pixels."""
        if not self.is_ready or not frame_data.is_valid:
            return DetectionResult.empty(frame_data.frame_index)

        async with self._lock:
            backend = self._backend
            if backend is None or not self.is_ready:
                return DetectionResult.empty(frame_data.frame_index)
            try:
                result = await asyncio.to_thread(self._infer_sync, backend, frame_data)
            except InferenceError as e:
                self.failure_count += 1
                logging.warning(f"Inference error on frame {frame_data.frame_index}: {e}")
                return DetectionResult.empty(frame_data.frame_index)
            except Exception as e:
                self.failure_count += 1
                logging.error(f"Unexpected inference failure on frame {frame_data.frame_index}: {e}")
                return DetectionResult.empty(frame_data.frame_index)

        self.inference_count += 1
        if self._state == EngineState.CLOSED:
            return DetectionResult.empty(frame_data.frame_index)
        return result

    def _infer_sync(self, backend: InferenceBackend, frame_data: FrameData) -> DetectionResult:
        tensor = preprocess(frame_data.frame, backend.input_size)
        output = backend.run(tensor)
        return decode_output(
            output,
            dest_width=frame_data.width,
            dest_height=frame_data.height,
            input_size=backend.input_size,
            score_threshold=self.config.score_threshold,
            layout=self.config.layout,
            frame_index=frame_data.frame_index,
        )

    def close(self) -> None:
        """Tear down the model session. An in-flight inference may finish."""
        self._state = EngineState.CLOSED
        if self._backend is not None:
            self._backend.close()
            self._backend = None


def create_engine_from_config(detection_cfg: DetectionConfig) -> DetectionEngine:
    """Build a DetectionEngine backed by ONNX Runtime."""
    backend_cfg = OnnxBackendConfig(
        model_path=detection_cfg.model_path,
        input_size=detection_cfg.input_size,
        output_name=detection_cfg.layout.output_name,
        providers=detection_cfg.providers,
    )
    return DetectionEngine(lambda: OnnxBackend(backend_cfg), detection_cfg)
