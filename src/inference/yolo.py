"""
Pre- and post-processing for single-stage YOLO-style detectors.

Output decoding follows the layout pinned in OutputLayout:
per anchor, `geometry_channels` values (the first four are cx, cy, w, h in
model-input pixels) followed by one score per class. The best class per
anchor is kept when its score exceeds the threshold and its geometry is
finite.

No non-max suppression is applied. Overlapping boxes for one object all
survive; the masking renderer only needs coverage, and over-masking is safe.
Do not reuse this decoder where box precision matters.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from models.config import OutputLayout
from models.detection import BoundingBox, DetectionResult
from models.errors import InferenceError


def preprocess(frame: np.ndarray, input_size: int) -> np.ndarray:
    """
    Convert a BGR frame into a (1, 3, S, S) float32 tensor in [0, 1].

    The frame is stretched to the square input (no letterbox), matching how
    the model was exported.
    """
    if frame is None or frame.size == 0:
        raise InferenceError("Cannot preprocess an empty frame")

    resized = cv2.resize(frame, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    chw = np.transpose(rgb.astype(np.float32) / 255.0, (2, 0, 1))
    return np.ascontiguousarray(chw[np.newaxis, ...])


def decode_output(
    output: np.ndarray,
    dest_width: float,
    dest_height: float,
    input_size: int,
    score_threshold: float = 0.45,
    layout: Optional[OutputLayout] = None,
    frame_index: Optional[int] = None,
) -> DetectionResult:
    """
    Decode a raw output tensor into boxes in destination-raster pixels.

    Args:
        output: Tensor shaped (1, C, N) or (C, N) for channels-first layouts,
            (1, N, C) or (N, C) otherwise.
        dest_width: Width of the surface the boxes will be drawn on.
        dest_height: Height of the surface the boxes will be drawn on.
        input_size: Square model input resolution.
        score_threshold: Minimum best-class score; strictly greater passes.
        layout: Output layout contract.
        frame_index: Frame the result belongs to.

    Raises:
        InferenceError: If the tensor does not match the layout.
    """
    layout = layout or OutputLayout()
    data = np.asarray(output, dtype=np.float32)
    if data.ndim == 3:
        if data.shape[0] != 1:
            raise InferenceError(f"Expected batch size 1, got {data.shape[0]}")
        data = data[0]
    if data.ndim != 2:
        raise InferenceError(f"Unexpected output rank {np.asarray(output).ndim}")

    # Normalize to (channels, anchors)
    if not layout.channels_first:
        data = data.T

    if layout.geometry_channels < 4:
        raise InferenceError(
            f"Layout {layout.version} has {layout.geometry_channels} geometry channels, need at least 4"
        )

    channels = data.shape[0]
    class_channels = channels - layout.geometry_channels
    if class_channels < 1:
        raise InferenceError(
            f"Output has {channels} channels, need more than {layout.geometry_channels}"
        )
    if layout.num_classes is not None and class_channels != layout.num_classes:
        raise InferenceError(
            f"Layout {layout.version} expects {layout.num_classes} classes, "
            f"output has {class_channels}"
        )

    if data.shape[1] == 0:
        return DetectionResult.empty(frame_index)

    scores = data[layout.geometry_channels:, :]
    labels = np.argmax(scores, axis=0)
    best = scores[labels, np.arange(scores.shape[1])]
    geometry = data[:layout.geometry_channels, :][:4]
    # Anchors with non-finite geometry cannot be drawn
    passing = (best > score_threshold) & np.isfinite(geometry).all(axis=0)
    keep = np.flatnonzero(passing)

    scale_x = dest_width / input_size
    scale_y = dest_height / input_size

    boxes = []
    for i in keep:
        cx, cy, w, h = (float(v) for v in geometry[:, i])
        boxes.append(
            BoundingBox(
                x=(cx - w / 2) * scale_x,
                y=(cy - h / 2) * scale_y,
                width=w * scale_x,
                height=h * scale_y,
                label=int(labels[i]),
                confidence=float(best[i]),
            )
        )

    return DetectionResult(boxes=tuple(boxes), frame_index=frame_index)
