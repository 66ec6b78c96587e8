"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    mirror: bool = False
    read_interval_s: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            mirror=d.get("mirror", False),
            read_interval_s=d.get("read_interval_s", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "mirror": self.mirror,
            "read_interval_s": self.read_interval_s,
        }


@dataclass(frozen=True)
class OutputLayout:
    """
    Shape contract for the detector's raw output tensor.

    The model artifact is opaque, so the channel ordering is pinned here
    instead of being guessed from the tensor at runtime. Bump `version` when
    the exported model changes.

    Attributes:
        version: Identifier of the exported model family.
        output_name: Name of the output tensor (falls back to the first output).
        geometry_channels: Leading geometry channels, at least 4; the first
            four hold cx, cy, w, h.
        num_classes: Expected class-score channels. None accepts any count.
        channels_first: True for (1, C, N) tensors, False for (1, N, C).
    """
    version: str = "yolov8-v1"
    output_name: str = "output0"
    geometry_channels: int = 4
    num_classes: Optional[int] = 2
    channels_first: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OutputLayout":
        return cls(
            version=d.get("version", "yolov8-v1"),
            output_name=d.get("output_name", "output0"),
            geometry_channels=d.get("geometry_channels", 4),
            num_classes=d.get("num_classes", 2),
            channels_first=d.get("channels_first", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "output_name": self.output_name,
            "geometry_channels": self.geometry_channels,
            "num_classes": self.num_classes,
            "channels_first": self.channels_first,
        }


@dataclass
class DetectionConfig:
    """Detection model configuration."""
    model_path: str = "models/yolov8_trained_model.onnx"
    input_size: int = 640
    score_threshold: float = 0.45
    providers: Optional[List[str]] = None
    layout: OutputLayout = field(default_factory=OutputLayout)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            model_path=d.get("model_path", "models/yolov8_trained_model.onnx"),
            input_size=d.get("input_size", 640),
            score_threshold=d.get("score_threshold", 0.45),
            providers=d.get("providers"),
            layout=OutputLayout.from_dict(d.get("layout") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "model_path": self.model_path,
            "input_size": self.input_size,
            "score_threshold": self.score_threshold,
            "layout": self.layout.to_dict(),
        }
        if self.providers is not None:
            d["providers"] = self.providers
        return d


@dataclass
class MaskingConfig:
    """Agent view masking policy."""
    sensitive_class_id: int = 0
    blur_sigma: float = 15.0
    reveal_width_ratio: float = 0.6
    reveal_height_ratio: float = 0.55
    dim_alpha: float = 0.4
    refresh_hz: float = 30.0
    placeholder_size: List[int] = field(default_factory=lambda: [640, 480])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MaskingConfig":
        return cls(
            sensitive_class_id=d.get("sensitive_class_id", 0),
            blur_sigma=d.get("blur_sigma", 15.0),
            reveal_width_ratio=d.get("reveal_width_ratio", 0.6),
            reveal_height_ratio=d.get("reveal_height_ratio", 0.55),
            dim_alpha=d.get("dim_alpha", 0.4),
            refresh_hz=d.get("refresh_hz", 30.0),
            placeholder_size=d.get("placeholder_size", [640, 480]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sensitive_class_id": self.sensitive_class_id,
            "blur_sigma": self.blur_sigma,
            "reveal_width_ratio": self.reveal_width_ratio,
            "reveal_height_ratio": self.reveal_height_ratio,
            "dim_alpha": self.dim_alpha,
            "refresh_hz": self.refresh_hz,
            "placeholder_size": self.placeholder_size,
        }


@dataclass
class SessionConfig:
    """Capture flow configuration."""
    countdown_start: int = 3
    countdown_interval_s: float = 1.0
    capture_quality: float = 0.9

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SessionConfig":
        return cls(
            countdown_start=d.get("countdown_start", 3),
            countdown_interval_s=d.get("countdown_interval_s", 1.0),
            capture_quality=d.get("capture_quality", 0.9),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "countdown_start": self.countdown_start,
            "countdown_interval_s": self.countdown_interval_s,
            "capture_quality": self.capture_quality,
        }


@dataclass
class VerificationConfig:
    """Remote verification service configuration."""
    service_url: str = "http://localhost:8700"
    timeout_s: float = 15.0
    api_key_env: Optional[str] = "KYC_SERVICE_API_KEY"
    face_backend: str = "remote"
    text_backend: str = "remote"
    aws_region: str = "us-east-1"
    similarity_threshold: float = 70.0
    match_threshold: float = 80.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VerificationConfig":
        return cls(
            service_url=d.get("service_url", "http://localhost:8700"),
            timeout_s=d.get("timeout_s", 15.0),
            api_key_env=d.get("api_key_env", "KYC_SERVICE_API_KEY"),
            face_backend=d.get("face_backend", "remote"),
            text_backend=d.get("text_backend", "remote"),
            aws_region=d.get("aws_region", "us-east-1"),
            similarity_threshold=d.get("similarity_threshold", 70.0),
            match_threshold=d.get("match_threshold", 80.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_url": self.service_url,
            "timeout_s": self.timeout_s,
            "api_key_env": self.api_key_env,
            "face_backend": self.face_backend,
            "text_backend": self.text_backend,
            "aws_region": self.aws_region,
            "similarity_threshold": self.similarity_threshold,
            "match_threshold": self.match_threshold,
        }


@dataclass
class WebConfig:
    """HTTP surface configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    stream_fps: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 8000),
            stream_fps=d.get("stream_fps", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"host": self.host, "port": self.port, "stream_fps": self.stream_fps}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    masking: MaskingConfig = field(default_factory=MaskingConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/kyc_live.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            masking=MaskingConfig.from_dict(d.get("masking", {}) or {}),
            session=SessionConfig.from_dict(d.get("session", {}) or {}),
            verification=VerificationConfig.from_dict(d.get("verification", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/kyc_live.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "masking": self.masking.to_dict(),
            "session": self.session.to_dict(),
            "verification": self.verification.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
