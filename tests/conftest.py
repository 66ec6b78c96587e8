"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import List, Optional

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.frame import FrameData  # noqa: E402
from models.session import EncodedImage  # noqa: E402


class FakeFrameSource:
    """In-memory FrameSource serving a fixed frame."""

    def __init__(self, frame: Optional[np.ndarray] = None):
        self.frame = frame
        self.reads = 0

    @property
    def is_ready(self) -> bool:
        return self.frame is not None

    @property
    def width(self) -> int:
        return self.frame.shape[1] if self.frame is not None else 0

    @property
    def height(self) -> int:
        return self.frame.shape[0] if self.frame is not None else 0

    def current_frame(self) -> Optional[FrameData]:
        if self.frame is None:
            return None
        self.reads += 1
        return FrameData.from_numpy(self.frame.copy(), timestamp=0.0, frame_index=self.reads, source="fake")


class FakeFaceMatcher:
    def __init__(self, score: float = 92.3, error: Optional[Exception] = None):
        self.score = score
        self.error = error
        self.calls: List[tuple] = []

    def compare(self, source, target) -> float:
        self.calls.append((source, target))
        if self.error is not None:
            raise self.error
        return self.score


class FakeTextReader:
    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[EncodedImage] = []

    def read_text(self, image) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.text


def make_checkerboard(width: int = 320, height: int = 240, cell: int = 8) -> np.ndarray:
    """BGR frame of alternating black and white cells."""
    ys, xs = np.indices((height, width))
    board = (((ys // cell) + (xs // cell)) % 2 * 255).astype(np.uint8)
    return np.dstack([board, board, board])


@pytest.fixture
def checkerboard():
    return make_checkerboard()


@pytest.fixture
def frame_source(checkerboard):
    return FakeFrameSource(checkerboard)


@pytest.fixture
def face_image():
    return EncodedImage(data=b"\xff\xd8face-bytes")


@pytest.fixture
def id_image():
    return EncodedImage(data=b"\xff\xd8id-bytes")


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  model_path: "models/test.onnx"
  input_size: 640
  score_threshold: 0.45

masking:
  sensitive_class_id: 0
  reveal_width_ratio: 0.6
  reveal_height_ratio: 0.55

session:
  countdown_start: 3
  countdown_interval_s: 1.0

verification:
  service_url: "http://localhost:8700"
  match_threshold: 80

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "model_path": "models/yolov8_trained_model.onnx",
            "input_size": 640,
            "score_threshold": 0.45,
        },
        "masking": {
            "sensitive_class_id": 0,
            "blur_sigma": 15,
            "reveal_width_ratio": 0.6,
            "reveal_height_ratio": 0.55,
            "dim_alpha": 0.4,
            "refresh_hz": 30,
        },
        "session": {
            "countdown_start": 3,
            "countdown_interval_s": 1.0,
            "capture_quality": 0.9,
        },
        "verification": {
            "service_url": "http://localhost:8700",
            "timeout_s": 15,
            "text_backend": "remote",
            "match_threshold": 80,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
