from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from models.session import Session
from models.verification import VerificationResult


class VerifyRequest(BaseModel):
    faceImage: Optional[str] = Field(None, description="Face photo as a base64 data URL")
    idImage: Optional[str] = Field(None, description="ID card photo as a base64 data URL")


class ExtractedData(BaseModel):
    name: str
    idNumber: str
    dob: str


class VerificationResponse(BaseModel):
    verified: bool
    faceMatchScore: float
    extractedData: ExtractedData
    message: str

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerificationResponse":
        return cls(**result.to_dict())


class SessionResponse(BaseModel):
    step: str = Field(..., description="FACE_CAPTURE|ID_CAPTURE|VERIFYING|RESULT")
    countdown: Optional[int] = Field(None, description="Seconds left before capture, if counting down")
    hasFaceImage: bool
    hasIdImage: bool
    overlayMode: str = Field(..., description="FACE|ID|NONE")
    result: Optional[VerificationResponse] = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            step=session.step.value,
            countdown=session.countdown_remaining,
            hasFaceImage=session.face_image is not None,
            hasIdImage=session.id_image is not None,
            overlayMode=session.overlay_mode.value,
            result=VerificationResponse.from_result(session.result) if session.result else None,
        )


class HealthResponse(BaseModel):
    status: str = Field(..., description="running|degraded|offline")
    warnings: List[str] = Field(default_factory=list)
    camera_ready: bool = False
    camera_error: Optional[str] = None
    frame_size: List[int] = Field(default_factory=lambda: [0, 0])
    model_state: Optional[str] = None
    model_error: Optional[str] = None
    masking_offline: bool = False
    agent_ticks: int = 0
    uptime_seconds: Optional[int] = None
    step: Optional[str] = None
