"""
Detection engine for the agent view.
"""

from .backend import InferenceBackend
from .engine import DetectionEngine, EngineState, create_engine_from_config
from .onnx_backend import OnnxBackend, OnnxBackendConfig
from .yolo import decode_output, preprocess

__all__ = [
    "InferenceBackend",
    "DetectionEngine",
    "EngineState",
    "create_engine_from_config",
    "OnnxBackend",
    "OnnxBackendConfig",
    "decode_output",
    "preprocess",
]
