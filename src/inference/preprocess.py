"""
Geometric preprocessing of frames before they are forwarded into the model.

Frames are padded on the bottom/right only to a square canvas, resized
bilinearly to the model input size, normalized to [0, 1] and given a leading
batch axis. The returned ratios invert model-space coordinates back to
source pixels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np


@dataclass
class PreprocessedInput:
    """
    Model input tensor for one frame.

    Attributes:
        tensor: float32 array of shape (1, model_height, model_width, 3).
        x_ratio: max_side / source width.
        y_ratio: max_side / source height.
        max_side: Side of the square padding canvas in source pixels.
    """
    tensor: Optional[np.ndarray]
    x_ratio: float
    y_ratio: float
    max_side: int

    @property
    def ratios(self) -> Tuple[float, float]:
        return (self.x_ratio, self.y_ratio)

    def release(self) -> None:
        """Drop the tensor buffer; called at the end of the frame step."""
        self.tensor = None


def preprocess(
    frame: np.ndarray,
    model_width: int,
    model_height: int,
    swap_rb: bool = True,
) -> PreprocessedInput:
    """
    Pad, resize and normalize a frame for the model.

    Args:
        frame: Source pixels (H x W x 3 BGR, or H x W grayscale).
        model_width: Model input width.
        model_height: Model input height.
        swap_rb: Convert OpenCV BGR to the RGB order the model expects.

    Returns:
        PreprocessedInput with the batched tensor and inverse ratios.

    Raises:
        ValueError: If the frame is empty or the model size is not positive.
    """
    if model_width <= 0 or model_height <= 0:
        raise ValueError(f"Invalid model input size: {model_width}x{model_height}")
    if frame is None or frame.size == 0:
        raise ValueError("Cannot preprocess an empty frame")

    h, w = frame.shape[:2]
    max_side = max(w, h)

    if frame.ndim == 2:
        frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)

    # padding image to square => [h, w] to [n, n], bottom/right only
    padded = cv2.copyMakeBorder(
        frame,
        0, max_side - h,
        0, max_side - w,
        cv2.BORDER_CONSTANT,
        value=(0, 0, 0),
    )
    resized = cv2.resize(padded, (model_width, model_height), interpolation=cv2.INTER_LINEAR)
    if swap_rb:
        resized = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)

    tensor = np.expand_dims(resized.astype(np.float32) / 255.0, axis=0)

    return PreprocessedInput(
        tensor=tensor,
        x_ratio=max_side / w,
        y_ratio=max_side / h,
        max_side=max_side,
    )


def to_source_pixels(
    box: Tuple[float, float, float, float],
    ratios: Tuple[float, float],
    size: Tuple[int, int],
) -> Tuple[float, float, float, float]:
    """
    Map a normalized (y1, x1, y2, x2) box back to source (x1, y1, x2, y2).

    Args:
        box: Model-normalized box.
        ratios: (x_ratio, y_ratio) from preprocess().
        size: Source (width, height).
    """
    y1, x1, y2, x2 = box
    x_scale = ratios[0] * size[0]
    y_scale = ratios[1] * size[1]
    return (x1 * x_scale, y1 * y_scale, x2 * x_scale, y2 * y_scale)


def to_model_normalized(
    point: Tuple[float, float],
    max_side: int,
) -> Tuple[float, float]:
    """Map a source pixel (x, y) to model-normalized (x, y)."""
    return (point[0] / max_side, point[1] / max_side)
