from __future__ import annotations

import asyncio
import binascii
import logging
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from models.session import EncodedImage
from runtime.context import RuntimeContext
from verification.orchestrator import VerificationOrchestrator
from ..api_models import HealthResponse, SessionResponse, VerificationResponse, VerifyRequest

router = APIRouter()

MJPEG_MEDIA_TYPE = "multipart/x-mixed-replace; boundary=frame"


def _get_context(request: Request) -> RuntimeContext:
    ctx: Optional[RuntimeContext] = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Live session is not running")
    return ctx


def _get_orchestrator(request: Request) -> VerificationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Verification is not configured")
    return orchestrator


def _derive_status(status: Dict[str, Any]) -> Tuple[str, List[str]]:
    """
    Classify runtime health.
    No camera frame => offline; masking offline or model still loading => degraded.
    """
    level = "running"
    warnings: List[str] = []
    if status.get("camera_error") or not status.get("camera_ready"):
        level = "offline"
        warnings.append("camera_offline")

    if status.get("masking_offline"):
        warnings.append("masking_offline")
        if level == "running":
            level = "degraded"
    elif status.get("model_state") in ("idle", "loading"):
        warnings.append("model_loading")
        if level == "running":
            level = "degraded"

    return level, warnings


def _encode_jpeg(frame: np.ndarray) -> Optional[bytes]:
    ok, buf = cv2.imencode(".jpg", frame)
    if not ok:
        return None
    return buf.tobytes()


def _mjpeg_part(jpg: bytes) -> bytes:
    return b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"


@router.post("/kyc/verify", response_model=VerificationResponse)
def verify(req: VerifyRequest, request: Request):
    """Verify a face photo against an ID card photo (both as data URLs)."""
    if not req.faceImage or not req.idImage:
        return JSONResponse({"error": "Missing face or ID image"}, status_code=400)

    orchestrator = _get_orchestrator(request)
    logging.info("Processing verification request")
    try:
        face_image = EncodedImage.from_data_url(req.faceImage)
        id_image = EncodedImage.from_data_url(req.idImage)
    except (binascii.Error, ValueError) as e:
        return JSONResponse({"error": f"Invalid image payload: {e}"}, status_code=400)

    try:
        result = orchestrator.verify(face_image, id_image)
    except Exception as e:
        logging.exception("Verification error")
        return JSONResponse({"error": str(e)}, status_code=500)

    return VerificationResponse.from_result(result)


@router.get("/session", response_model=SessionResponse)
def get_session(request: Request):
    ctx = _get_context(request)
    return SessionResponse.from_session(ctx.machine.session)


@router.post("/session/countdown", response_model=SessionResponse)
async def start_countdown(request: Request):
    ctx = _get_context(request)
    if ctx.camera_error:
        raise HTTPException(status_code=503, detail=ctx.camera_error)
    if not ctx.machine.start_countdown():
        raise HTTPException(
            status_code=409,
            detail=f"Cannot start countdown in {ctx.machine.step.value}",
        )
    return SessionResponse.from_session(ctx.machine.session)


@router.post("/session/reset", response_model=SessionResponse)
async def reset_session(request: Request):
    ctx = _get_context(request)
    ctx.machine.reset()
    return SessionResponse.from_session(ctx.machine.session)


@router.get("/session/images/{kind}.jpg")
def session_image(kind: str, request: Request):
    ctx = _get_context(request)
    session = ctx.machine.session
    if kind == "face":
        image = session.face_image
    elif kind == "id":
        image = session.id_image
    else:
        raise HTTPException(status_code=404, detail=f"Unknown image kind: {kind}")
    if image is None:
        raise HTTPException(status_code=404, detail=f"No {kind} image captured")
    return Response(content=image.data, media_type=image.mime_type, headers={"Cache-Control": "no-store"})


@router.get("/agent/stream.mjpg")
async def agent_stream(request: Request, fps: Optional[int] = None):
    """Stream the masked agent view as MJPEG."""
    ctx = _get_context(request)
    fps = max(1, min(30, int(fps or ctx.config.web.stream_fps)))
    delay = 1.0 / fps

    async def gen():
        while True:
            if await request.is_disconnected():
                break
            surface = ctx.agent_view.latest_surface()
            jpg = _encode_jpeg(surface) if surface is not None else None
            if jpg is not None:
                yield _mjpeg_part(jpg)
            await asyncio.sleep(delay)

    return StreamingResponse(gen(), media_type=MJPEG_MEDIA_TYPE)


@router.get("/client/stream.mjpg")
async def client_stream(request: Request, fps: Optional[int] = None):
    """Stream the raw client feed as MJPEG."""
    ctx = _get_context(request)
    fps = max(1, min(30, int(fps or ctx.config.web.stream_fps)))
    delay = 1.0 / fps

    async def gen():
        while True:
            if await request.is_disconnected():
                break
            frame_data = ctx.source.current_frame()
            jpg = _encode_jpeg(frame_data.frame) if frame_data is not None else None
            if jpg is not None:
                yield _mjpeg_part(jpg)
            await asyncio.sleep(delay)

    return StreamingResponse(gen(), media_type=MJPEG_MEDIA_TYPE)


@router.get("/health", response_model=HealthResponse)
def health(request: Request):
    ctx: Optional[RuntimeContext] = getattr(request.app.state, "ctx", None)
    if ctx is None:
        return HealthResponse(status="offline", warnings=["session_not_running"])
    status = ctx.status()
    level, warnings = _derive_status(status)
    return HealthResponse(status=level, warnings=warnings, **status)
