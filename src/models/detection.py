"""
Detection models for the masking pipeline.

A DetectionResult is the full output of one inference cycle. It is replaced
wholesale on the next cycle; nothing is tracked or merged across frames.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A labeled box in output-raster pixel coordinates.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Box width.
        height: Box height.
        label: Class id from the detector.
        confidence: Class score in [0, 1].
    """
    x: float
    y: float
    width: float
    height: float
    label: int = 0
    confidence: float = 1.0

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @classmethod
    def from_center(
        cls,
        cx: float,
        cy: float,
        w: float,
        h: float,
        label: int = 0,
        confidence: float = 1.0,
    ) -> "BoundingBox":
        """Create from center-x, center-y, width, height."""
        return cls(
            x=cx - w / 2,
            y=cy - h / 2,
            width=w,
            height=h,
            label=label,
            confidence=confidence,
        )

    def to_pixel_rect(self, surface_w: int, surface_h: int) -> Optional[Tuple[int, int, int, int]]:
        """
        Return (x1, y1, x2, y2) integer pixel bounds covering the box, clipped
        to the surface. Edges round outward so partial pixels are covered.
        Returns None when nothing of the box lies on the surface.
        """
        x1 = max(0, int(math.floor(self.x)))
        y1 = max(0, int(math.floor(self.y)))
        x2 = min(surface_w, int(math.ceil(self.x2)))
        y2 = min(surface_h, int(math.ceil(self.y2)))
        if x2 <= x1 or y2 <= y1:
            return None
        return (x1, y1, x2, y2)

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "label": self.label,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class DetectionResult:
    """Ordered boxes produced by a single inference cycle."""
    boxes: Tuple[BoundingBox, ...] = ()
    frame_index: Optional[int] = None

    def __iter__(self) -> Iterator[BoundingBox]:
        return iter(self.boxes)

    def __len__(self) -> int:
        return len(self.boxes)

    def __bool__(self) -> bool:
        return bool(self.boxes)

    def has_label(self, label: int) -> bool:
        return any(box.label == label for box in self.boxes)

    @classmethod
    def empty(cls, frame_index: Optional[int] = None) -> "DetectionResult":
        return cls(boxes=(), frame_index=frame_index)
