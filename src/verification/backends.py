"""
Clients for the identity-verification services.

The orchestrator depends on two capabilities:

- FaceMatcher.compare(source, target) -> similarity percentage (0-100).
  Raises NoFaceDetectedError when the service finds no face in either image.
- TextReader.read_text(image) -> raw OCR text of the ID card.

Both raise RemoteServiceError for any other failure.

Implementations:

- RemoteFaceMatcher / RemoteTextReader: the HTTP service below.
- RekognitionFaceMatcher: AWS Rekognition CompareFaces.
- VisionTextReader: Google Cloud Vision text detection.

Wire format of the HTTP service: JSON bodies carrying images as
MIME-prefixed base64 data URLs.

    POST /faces/compare  {"sourceImage": ..., "targetImage": ...}
        -> {"similarity": 92.3}
    POST /text/detect    {"image": ...}
        -> {"text": "..."}
    errors -> {"error": {"code": "NoFaceDetected", "message": "..."}}
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Protocol

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from models.config import VerificationConfig
from models.errors import NoFaceDetectedError, RemoteServiceError
from models.session import EncodedImage

NO_FACE_CODES = ("NoFaceDetected", "InvalidParameterException")


class FaceMatcher(Protocol):
    def compare(self, source: EncodedImage, target: EncodedImage) -> float:
        ...


class TextReader(Protocol):
    def read_text(self, image: EncodedImage) -> str:
        ...


class RemoteServiceClient:
    """Shared HTTP plumbing for the verification service."""

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 15.0,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.post(url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise RemoteServiceError(f"Request to {url} failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            self._raise_service_error(body["error"], resp.status_code)
        if resp.status_code >= 400:
            raise RemoteServiceError(f"{url} returned HTTP {resp.status_code}")
        if not isinstance(body, dict):
            raise RemoteServiceError(f"{url} returned a non-JSON body")
        return body

    @staticmethod
    def _raise_service_error(error: Any, status_code: int) -> None:
        if isinstance(error, dict):
            code = str(error.get("code", ""))
            message = str(error.get("message", ""))
        else:
            code = ""
            message = str(error)

        if code in NO_FACE_CODES or "no face" in message.lower():
            raise NoFaceDetectedError(message or "No face detected")
        raise RemoteServiceError(f"Service error (HTTP {status_code}) {code}: {message}".strip())


class RemoteFaceMatcher:
    def __init__(self, client: RemoteServiceClient):
        self._client = client

    def compare(self, source: EncodedImage, target: EncodedImage) -> float:
        body = self._client.post(
            "/faces/compare",
            {"sourceImage": source.to_data_url(), "targetImage": target.to_data_url()},
        )
        similarity = body.get("similarity")
        if similarity is None:
            # No matching face pair above the service's own threshold
            return 0.0
        try:
            return float(similarity)
        except (TypeError, ValueError) as e:
            raise RemoteServiceError(f"Invalid similarity value: {similarity!r}") from e


class RemoteTextReader:
    def __init__(self, client: RemoteServiceClient):
        self._client = client

    def read_text(self, image: EncodedImage) -> str:
        body = self._client.post("/text/detect", {"image": image.to_data_url()})
        return str(body.get("text") or "")


class RekognitionFaceMatcher:
    """
    Face comparison through AWS Rekognition CompareFaces.

    The similarity of the best match is returned. No match above
    `similarity_threshold` scores 0. Rekognition reports an image without a
    face as InvalidParameterException, which maps to NoFaceDetectedError.
    Credentials come from the standard AWS chain (env vars, profile, role).
    """

    def __init__(self, region: str = "us-east-1", similarity_threshold: float = 70.0, client: Any = None):
        self.similarity_threshold = similarity_threshold
        self._client = client or boto3.client("rekognition", region_name=region)

    def compare(self, source: EncodedImage, target: EncodedImage) -> float:
        try:
            resp = self._client.compare_faces(
                SourceImage={"Bytes": source.data},
                TargetImage={"Bytes": target.data},
                SimilarityThreshold=self.similarity_threshold,
            )
        except ClientError as e:
            error = e.response.get("Error", {})
            code = str(error.get("Code", ""))
            message = str(error.get("Message", ""))
            if code in NO_FACE_CODES or "no face" in message.lower():
                raise NoFaceDetectedError(message or "No face detected") from e
            raise RemoteServiceError(f"Rekognition error {code}: {message}".strip()) from e
        except BotoCoreError as e:
            raise RemoteServiceError(f"Rekognition request failed: {e}") from e

        matches = resp.get("FaceMatches") or []
        if not matches:
            return 0.0
        return float(matches[0].get("Similarity") or 0.0)


class VisionTextReader:
    """OCR through Google Cloud Vision text detection."""

    def __init__(self, client: Any = None):
        try:
            from google.cloud import vision  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ImportError(
                "google-cloud-vision is not installed. Install with "
                "`pip install google-cloud-vision` or set verification.text_backend to 'remote'."
            ) from e
        self._vision = vision
        self._client = client or vision.ImageAnnotatorClient()

    def read_text(self, image: EncodedImage) -> str:
        try:
            response = self._client.text_detection(image=self._vision.Image(content=image.data))
        except Exception as e:
            raise RemoteServiceError(f"Cloud Vision request failed: {e}") from e
        if response.error.message:
            raise RemoteServiceError(f"Cloud Vision error: {response.error.message}")
        return response.full_text_annotation.text or ""


def create_backends_from_config(cfg: VerificationConfig) -> tuple[FaceMatcher, TextReader]:
    """Build the face matcher and text reader named by the config."""
    client: Optional[RemoteServiceClient] = None
    if cfg.face_backend == "remote" or cfg.text_backend == "remote":
        api_key = os.environ.get(cfg.api_key_env) if cfg.api_key_env else None
        client = RemoteServiceClient(cfg.service_url, timeout_s=cfg.timeout_s, api_key=api_key)

    if cfg.face_backend == "rekognition":
        face_matcher: FaceMatcher = RekognitionFaceMatcher(
            region=cfg.aws_region, similarity_threshold=cfg.similarity_threshold
        )
    else:
        face_matcher = RemoteFaceMatcher(client)

    if cfg.text_backend == "vision":
        text_reader: TextReader = VisionTextReader()
    else:
        text_reader = RemoteTextReader(client)

    logging.info(
        f"Verification backends: face={cfg.face_backend} text={cfg.text_backend} service={cfg.service_url}"
    )
    return face_matcher, text_reader
