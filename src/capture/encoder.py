"""
Frame capture encoder: snapshot one live frame into an encoded still.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2

from models.session import EncodedImage
from observation.base import FrameSource

DEFAULT_JPEG_QUALITY = 0.9


def capture_frame(source: FrameSource, quality: float = DEFAULT_JPEG_QUALITY) -> Optional[EncodedImage]:
    """
    Encode the source's current frame as JPEG.

    Args:
        source: Live frame source.
        quality: JPEG quality in (0, 1].

    Returns:
        EncodedImage at the source's native resolution, or None when the
        source has no current frame.
    """
    if not source.is_ready:
        return None

    frame_data = source.current_frame()
    if frame_data is None or not frame_data.is_valid:
        return None

    jpeg_quality = int(round(max(0.0, min(1.0, quality)) * 100))
    ok, buf = cv2.imencode(".jpg", frame_data.frame, [int(cv2.IMWRITE_JPEG_QUALITY), jpeg_quality])
    if not ok:
        logging.error(f"JPEG encoding failed for frame {frame_data.frame_index}")
        return None

    image = EncodedImage(data=buf.tobytes(), format="jpeg")
    logging.debug(
        f"Captured frame {frame_data.frame_index} "
        f"({frame_data.width}x{frame_data.height}, {len(image)} bytes)"
    )
    return image
