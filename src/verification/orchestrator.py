"""
Verification orchestrator: turns the two captured images into a result.

The flow degrades instead of aborting:

1. Empty buffer -> generic failure, nothing sent to the service.
2. Face comparison. "No face detected" ends the flow with a dedicated
   message. Any other failure counts as a score of 0.
3. Text extraction from the ID image. A failure leaves the fields at
   "Not Found".
4. verified = raw score > threshold; the reported score is rounded to 2 places.
"""

from __future__ import annotations

import logging
from typing import Optional

from models.errors import EmptyImageBufferError, NoFaceDetectedError
from models.session import EncodedImage
from models.verification import (
    MSG_FACE_MISMATCH,
    MSG_NO_FACE,
    MSG_VERIFIED,
    VerificationResult,
    default_extracted_fields,
)
from .backends import FaceMatcher, TextReader
from .parsing import extract_fields

DEFAULT_MATCH_THRESHOLD = 80.0


def _check_buffers(face_image: Optional[EncodedImage], id_image: Optional[EncodedImage]) -> None:
    if face_image is None or face_image.is_empty:
        raise EmptyImageBufferError("Face image buffer is empty")
    if id_image is None or id_image.is_empty:
        raise EmptyImageBufferError("ID image buffer is empty")


class VerificationOrchestrator:
    def __init__(
        self,
        face_matcher: FaceMatcher,
        text_reader: TextReader,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
    ):
        self.face_matcher = face_matcher
        self.text_reader = text_reader
        self.match_threshold = match_threshold

    def verify(self, face_image: Optional[EncodedImage], id_image: Optional[EncodedImage]) -> VerificationResult:
        """
        Verify that the face in `face_image` matches the ID in `id_image`.

        Never raises for service failures; always returns a result.
        """
        try:
            _check_buffers(face_image, id_image)
        except EmptyImageBufferError as e:
            logging.error(f"Verification aborted: {e}")
            return VerificationResult.failure()

        logging.info(f"Processing verification: face={len(face_image)} bytes, id={len(id_image)} bytes")

        score = 0.0
        try:
            score = self.face_matcher.compare(face_image, id_image)
            logging.info(f"Face match score: {score}")
        except NoFaceDetectedError as e:
            logging.info(f"No face detected: {e}")
            return VerificationResult(
                verified=False,
                face_match_score=0.0,
                extracted_fields=default_extracted_fields(),
                message=MSG_NO_FACE,
            )
        except Exception as e:
            logging.error(f"Face comparison failed, scoring 0: {e}")
            score = 0.0

        fields = default_extracted_fields()
        try:
            text = self.text_reader.read_text(id_image)
            logging.info(f"OCR text length: {len(text)}")
            fields = extract_fields(text)
        except Exception as e:
            logging.error(f"Text extraction failed: {e}")

        # Decide on the raw similarity; only the reported score is rounded
        verified = float(score) > self.match_threshold
        return VerificationResult(
            verified=verified,
            face_match_score=round(float(score), 2),
            extracted_fields=fields,
            message=MSG_VERIFIED if verified else MSG_FACE_MISMATCH,
        )
