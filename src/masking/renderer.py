"""
Masking renderer for the agent view.

Every display tick the agent surface is rebuilt from the live frame and the
current cycle's detections. The output depends only on the arguments of
render(); nothing is carried over between ticks.

Policy by overlay mode:

- ID: the whole frame is drawn strongly blurred. Only when the cycle found
  the sensitive-field class are sharp pixels copied back, and only inside
  the centered reveal rectangle, with every detected box painted black on
  top. Without that class the blurred frame is dimmed and a "searching"
  message is shown.
- FACE / NONE: the frame is drawn sharp with every detected box painted
  black.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from models.config import MaskingConfig
from models.detection import DetectionResult
from models.session import OverlayMode

PLACEHOLDER_TEXT = "Initializing Video..."
SEARCHING_TEXT = "Looking for ID Card..."
MASKING_OFFLINE_TEXT = "Warning: Masking Offline"

# Colors (BGR)
COLOR_PLACEHOLDER_BG = (17, 17, 17)
COLOR_PLACEHOLDER_TEXT = (102, 102, 102)
COLOR_MASK = (0, 0, 0)
COLOR_TEXT = (255, 255, 255)
COLOR_WARNING_BG = (4, 138, 202)

Rect = Tuple[int, int, int, int]


class MaskingRenderer:
    """
    Composites the agent view surface.

    Example:
        renderer = MaskingRenderer(MaskingConfig())
        surface = renderer.render(frame, detections, OverlayMode.ID)
    """

    def __init__(self, config: Optional[MaskingConfig] = None):
        self.config = config or MaskingConfig()

    def render(
        self,
        frame: Optional[np.ndarray],
        detections: Optional[DetectionResult],
        mode: OverlayMode,
        warning: Optional[str] = None,
    ) -> np.ndarray:
        """
        Build the output surface for one tick.

        Args:
            frame: Current BGR frame, or None when the source has none.
            detections: This cycle's detections; None is treated as empty.
            mode: Overlay mode selected by the session step.
            warning: Optional persistent banner text.

        Returns:
            A new HxWx3 uint8 array. The input frame is never modified.
        """
        if frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
            surface = self.render_placeholder()
        else:
            detections = detections if detections is not None else DetectionResult.empty()
            if mode == OverlayMode.ID:
                surface = self._render_id(frame, detections)
            else:
                surface = self._render_sharp(frame, detections)

        if warning:
            self._draw_banner(surface, warning)
        return surface

    def render_placeholder(self) -> np.ndarray:
        w, h = self.config.placeholder_size
        surface = np.full((h, w, 3), COLOR_PLACEHOLDER_BG, dtype=np.uint8)
        cv2.putText(surface, PLACEHOLDER_TEXT, (20, 50), cv2.FONT_HERSHEY_SIMPLEX,
                    0.7, COLOR_PLACEHOLDER_TEXT, 2, cv2.LINE_AA)
        return surface

    def reveal_rect(self, width: int, height: int) -> Rect:
        """Return the centered reveal rectangle as (x1, y1, x2, y2)."""
        rw = int(round(width * self.config.reveal_width_ratio))
        rh = int(round(height * self.config.reveal_height_ratio))
        x1 = (width - rw) // 2
        y1 = (height - rh) // 2
        return (x1, y1, x1 + rw, y1 + rh)

    def blur(self, frame: np.ndarray) -> np.ndarray:
        return cv2.GaussianBlur(frame, (0, 0), sigmaX=self.config.blur_sigma)

    def _render_id(self, frame: np.ndarray, detections: DetectionResult) -> np.ndarray:
        surface = self.blur(frame)
        h, w = frame.shape[:2]

        if not detections.has_label(self.config.sensitive_class_id):
            surface = cv2.convertScaleAbs(surface, alpha=1.0 - self.config.dim_alpha)
            self._draw_centered_text(surface, SEARCHING_TEXT)
            return surface

        rx1, ry1, rx2, ry2 = self.reveal_rect(w, h)
        surface[ry1:ry2, rx1:rx2] = frame[ry1:ry2, rx1:rx2]

        # Masks are clipped to the reveal rectangle; outside it is still blurred
        for box in detections:
            rect = box.to_pixel_rect(w, h)
            if rect is None:
                continue
            clipped = _intersect(rect, (rx1, ry1, rx2, ry2))
            if clipped is None:
                continue
            x1, y1, x2, y2 = clipped
            surface[y1:y2, x1:x2] = COLOR_MASK
        return surface

    def _render_sharp(self, frame: np.ndarray, detections: DetectionResult) -> np.ndarray:
        surface = frame.copy()
        h, w = frame.shape[:2]
        for box in detections:
            rect = box.to_pixel_rect(w, h)
            if rect is None:
                continue
            x1, y1, x2, y2 = rect
            surface[y1:y2, x1:x2] = COLOR_MASK
        return surface

    def _draw_centered_text(self, surface: np.ndarray, text: str) -> None:
        h, w = surface.shape[:2]
        font = cv2.FONT_HERSHEY_SIMPLEX
        (tw, th), _ = cv2.getTextSize(text, font, 0.6, 1)
        org = (max(0, (w - tw) // 2), (h + th) // 2)
        cv2.putText(surface, text, org, font, 0.6, COLOR_TEXT, 1, cv2.LINE_AA)

    def _draw_banner(self, surface: np.ndarray, text: str) -> None:
        h, w = surface.shape[:2]
        font = cv2.FONT_HERSHEY_SIMPLEX
        (tw, th), _ = cv2.getTextSize(text, font, 0.45, 1)
        x2 = w - 10
        x1 = max(0, x2 - tw - 12)
        y1 = 10
        y2 = min(h, y1 + th + 12)
        cv2.rectangle(surface, (x1, y1), (x2, y2), COLOR_WARNING_BG, -1)
        cv2.putText(surface, text, (x1 + 6, y2 - 6), font, 0.45, COLOR_TEXT, 1, cv2.LINE_AA)


def _intersect(a: Rect, b: Rect) -> Optional[Rect]:
    x1 = max(a[0], b[0])
    y1 = max(a[1], b[1])
    x2 = min(a[2], b[2])
    y2 = min(a[3], b[3])
    if x2 <= x1 or y2 <= y1:
        return None
    return (x1, y1, x2, y2)
