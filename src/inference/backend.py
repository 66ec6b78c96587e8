"""
Inference backend interface.

A backend owns a loaded model (the model session) and turns one
preprocessed input tensor into the raw output tensor. Decoding into boxes
happens in the engine, against the configured output layout.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np


class InferenceBackend(Protocol):
    @property
    def input_size(self) -> int:
        ...

    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...
