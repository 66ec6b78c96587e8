"""
Session and captured-image models.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .verification import VerificationResult

_DATA_URL_PREFIX = re.compile(r"^data:image/(\w+);base64,")


class SessionStep(str, Enum):
    FACE_CAPTURE = "FACE_CAPTURE"
    ID_CAPTURE = "ID_CAPTURE"
    VERIFYING = "VERIFYING"
    RESULT = "RESULT"


class OverlayMode(str, Enum):
    """Which masking policy the agent view applies."""
    FACE = "FACE"
    ID = "ID"
    NONE = "NONE"


@dataclass(frozen=True)
class EncodedImage:
    """
    An encoded still image.

    The bytes are owned by this object; nothing refers back to the frame
    the image was captured from.
    """
    data: bytes
    format: str = "jpeg"

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    @property
    def is_empty(self) -> bool:
        return len(self.data) == 0

    def __len__(self) -> int:
        return len(self.data)

    def to_data_url(self) -> str:
        """Transport form: MIME-prefixed base64 text."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, data_url: str) -> "EncodedImage":
        """
        Parse a data URL. A bare base64 string (no prefix) is accepted and
        assumed to be JPEG.
        """
        match = _DATA_URL_PREFIX.match(data_url)
        fmt = "jpeg"
        payload = data_url
        if match:
            fmt = match.group(1).lower()
            if fmt == "jpg":
                fmt = "jpeg"
            payload = data_url[match.end():]
        return cls(data=base64.b64decode(payload), format=fmt)


@dataclass(frozen=True)
class Session:
    """
    State of one capture-and-verify interaction.

    Instances are immutable snapshots; the state machine replaces its
    current session on every transition.
    """
    step: SessionStep = SessionStep.FACE_CAPTURE
    countdown_remaining: Optional[int] = None
    face_image: Optional[EncodedImage] = None
    id_image: Optional[EncodedImage] = None
    result: Optional[VerificationResult] = None

    @property
    def countdown_active(self) -> bool:
        return self.countdown_remaining is not None

    @property
    def is_capture_step(self) -> bool:
        return self.step in (SessionStep.FACE_CAPTURE, SessionStep.ID_CAPTURE)

    @property
    def overlay_mode(self) -> OverlayMode:
        if self.step == SessionStep.FACE_CAPTURE:
            return OverlayMode.FACE
        if self.step == SessionStep.ID_CAPTURE:
            return OverlayMode.ID
        return OverlayMode.NONE

    def to_dict(self) -> dict:
        return {
            "step": self.step.value,
            "countdown": self.countdown_remaining,
            "hasFaceImage": self.face_image is not None,
            "hasIdImage": self.id_image is not None,
            "result": self.result.to_dict() if self.result is not None else None,
        }
