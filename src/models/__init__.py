"""
Typed models for the live KYC session.
"""

from .frame import FrameData
from .detection import BoundingBox, DetectionResult
from .session import EncodedImage, OverlayMode, Session, SessionStep
from .verification import VerificationResult
from .errors import (
    KycError,
    CameraUnavailableError,
    ModelLoadError,
    InferenceError,
    EmptyImageBufferError,
    NoFaceDetectedError,
    RemoteServiceError,
)
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    OutputLayout,
    MaskingConfig,
    SessionConfig,
    VerificationConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingBox",
    "DetectionResult",
    # Session
    "EncodedImage",
    "OverlayMode",
    "Session",
    "SessionStep",
    # Verification
    "VerificationResult",
    # Errors
    "KycError",
    "CameraUnavailableError",
    "ModelLoadError",
    "InferenceError",
    "EmptyImageBufferError",
    "NoFaceDetectedError",
    "RemoteServiceError",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "OutputLayout",
    "MaskingConfig",
    "SessionConfig",
    "VerificationConfig",
    "WebConfig",
]
