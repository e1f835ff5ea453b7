"""
OpenCV overlay drawing for realtime display and previews.
"""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from models.result import Marker

from .palette import hex_to_bgr

POINT_RADIUS = 3
FALLBACK_COLOR = (0, 255, 0)


def _bgr(marker: Marker):
    return hex_to_bgr(marker.color) or FALLBACK_COLOR


def draw_overlay(
    frame: np.ndarray,
    trail: Sequence[Marker],
    boxes: Sequence[Marker],
) -> np.ndarray:
    """
    Draw trail points and the current frame's boxes onto a copy of frame.

    Args:
        frame: BGR image in source-pixel coordinates.
        trail: Cumulative center points (drawn as dots).
        boxes: Markers of the current frame; those carrying a box get a
            rectangle and a label.
    """
    canvas = frame.copy()

    for marker in trail:
        center = (int(round(marker.x)), int(round(marker.y)))
        cv2.circle(canvas, center, POINT_RADIUS, _bgr(marker), -1)

    font = cv2.FONT_HERSHEY_SIMPLEX
    for marker in boxes:
        if marker.box is None:
            continue
        color = _bgr(marker)
        x1, y1, x2, y2 = (int(round(v)) for v in marker.box)
        cv2.rectangle(canvas, (x1, y1), (x2, y2), color, 2)

        label = f"{marker.class_name} {marker.score * 100:.1f}%"
        (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
        top = max(y1 - th - 6, 0)
        cv2.rectangle(canvas, (x1, top), (x1 + tw + 4, top + th + 6), color, -1)
        cv2.putText(canvas, label, (x1 + 2, top + th + 2), font, 0.5, (255, 255, 255), 1)

    return canvas
