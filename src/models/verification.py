"""
Verification result model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

MSG_VERIFIED = "Identity Verified"
MSG_FACE_MISMATCH = "Verification Failed (Face Mismatch)"
MSG_NO_FACE = "No face detected in one of the photos. Please retake."
MSG_GENERIC_FAILURE = "Verification Failed"

NOT_FOUND = "Not Found"

EXTRACTED_FIELD_NAMES = ("name", "idNumber", "dob")


def default_extracted_fields() -> Dict[str, str]:
    return {name: NOT_FOUND for name in EXTRACTED_FIELD_NAMES}


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of one verification attempt.

    Attributes:
        verified: True only when the face match score passed the threshold.
        face_match_score: Similarity percentage (0-100).
        extracted_fields: Text fields read from the ID card.
        message: User-facing summary.
    """
    verified: bool
    face_match_score: float
    extracted_fields: Mapping[str, str] = field(default_factory=default_extracted_fields)
    message: str = ""

    def __post_init__(self) -> None:
        # Freeze the mapping so the result cannot change once published.
        object.__setattr__(
            self, "extracted_fields", MappingProxyType(dict(self.extracted_fields))
        )

    @classmethod
    def failure(cls, message: str = MSG_GENERIC_FAILURE) -> "VerificationResult":
        """Synthetic result used when verification could not run at all."""
        return cls(
            verified=False,
            face_match_score=0.0,
            extracted_fields=default_extracted_fields(),
            message=message,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire form used by the HTTP API."""
        return {
            "verified": self.verified,
            "faceMatchScore": self.face_match_score,
            "extractedData": dict(self.extracted_fields),
            "message": self.message,
        }
