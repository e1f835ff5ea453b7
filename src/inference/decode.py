"""
Decode raw single-class model output into parallel detection arrays.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from models.detection import DetectionBatch
from models.errors import ShapeMismatch

BOX_ROW_WIDTH = 6  # x1, y1, x2, y2, objectness, class_score


def _check_shapes(boxes: np.ndarray, scores: np.ndarray) -> None:
    if boxes.ndim != 3 or boxes.shape[0] != 1 or boxes.shape[2] != BOX_ROW_WIDTH:
        raise ShapeMismatch(
            f"Expected box tensor of shape (1, N, {BOX_ROW_WIDTH}), got {tuple(boxes.shape)}"
        )
    if scores.ndim != 3 or scores.shape[0] != 1 or scores.shape[2] != 1:
        raise ShapeMismatch(
            f"Expected score tensor of shape (1, N, 1), got {tuple(scores.shape)}"
        )
    if boxes.shape[1] != scores.shape[1]:
        raise ShapeMismatch(
            f"Box and score tensors disagree on N: {boxes.shape[1]} != {scores.shape[1]}"
        )


def decode(
    boxes_tensor,
    scores_tensor,
    input_size: Optional[Tuple[int, int]] = None,
) -> DetectionBatch:
    """
    Convert raw model tensors to (y1, x1, y2, x2) boxes, scores and classes.

    Args:
        boxes_tensor: Array-like of shape (1, N, 6).
        scores_tensor: Array-like of shape (1, N, 1).
        input_size: Model (width, height) when the raw boxes are in model
            pixels; they are divided down to [0, 1]. None if already normalized.

    Raises:
        ShapeMismatch: If either tensor does not match the expected layout.
    """
    boxes = np.asarray(boxes_tensor, dtype=np.float32)
    scores = np.asarray(scores_tensor, dtype=np.float32)
    _check_shapes(boxes, scores)

    rows = boxes[0]
    x1, y1, x2, y2 = rows[:, 0], rows[:, 1], rows[:, 2], rows[:, 3]
    if input_size is not None:
        width, height = input_size
        x1, x2 = x1 / width, x2 / width
        y1, y2 = y1 / height, y2 / height

    return DetectionBatch(
        boxes=np.stack([y1, x1, y2, x2], axis=-1).astype(np.float32),
        scores=scores[0, :, 0].copy(),
        classes=np.zeros(rows.shape[0], dtype=np.int32),
    )
