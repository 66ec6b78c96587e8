"""
ONNX Runtime inference backend.

Prefers the CUDA execution provider when the installed runtime offers it,
otherwise runs on CPU.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from models.errors import InferenceError, ModelLoadError


@dataclass(frozen=True)
class OnnxBackendConfig:
    model_path: str
    input_size: int = 640
    output_name: str = "output0"
    providers: Optional[Sequence[str]] = None


def _select_providers(available: List[str], requested: Optional[Sequence[str]]) -> List[str]:
    if requested:
        chosen = [p for p in requested if p in available]
        if chosen:
            return chosen
        logging.warning(f"None of the requested providers {list(requested)} are available: {available}")
    if "CUDAExecutionProvider" in available:
        return ["CUDAExecutionProvider", "CPUExecutionProvider"]
    return ["CPUExecutionProvider"]


class OnnxBackend:
    def __init__(self, cfg: OnnxBackendConfig):
        self.cfg = cfg
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ModelLoadError(
                "onnxruntime is not installed. Install with `pip install onnxruntime`."
            ) from e

        if not os.path.exists(cfg.model_path):
            raise ModelLoadError(f"Model file not found: {cfg.model_path}")

        providers = _select_providers(ort.get_available_providers(), cfg.providers)
        try:
            self._session = ort.InferenceSession(cfg.model_path, providers=providers)
        except Exception as e:
            raise ModelLoadError(f"Failed to load model {cfg.model_path}: {e}") from e

        self._input_name = self._session.get_inputs()[0].name
        self._output_names = [o.name for o in self._session.get_outputs()]
        logging.info(
            f"ONNX model loaded: {cfg.model_path} providers={providers} "
            f"input={self._input_name} outputs={self._output_names}"
        )

    @property
    def input_size(self) -> int:
        return self.cfg.input_size

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self._session is None:
            raise InferenceError("Model session is closed")
        try:
            outputs = self._session.run(None, {self._input_name: tensor})
        except Exception as e:
            raise InferenceError(f"ONNX inference failed: {e}") from e
        if not outputs:
            raise InferenceError("Model returned no outputs")

        if self.cfg.output_name in self._output_names:
            return outputs[self._output_names.index(self.cfg.output_name)]
        return outputs[0]

    def close(self) -> None:
        self._session = None
