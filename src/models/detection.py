"""
Detection models for decoded and suppressed model output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Detection:
    """
    A single detection in model-normalized coordinates.

    Attributes:
        box: (y1, x1, y2, x2), each in [0, 1] relative to the square canvas.
        score: Detection confidence (0-1).
        class_index: Class index from the model.
    """
    box: Tuple[float, float, float, float]
    score: float
    class_index: int = 0

    @property
    def y1(self) -> float:
        return self.box[0]

    @property
    def x1(self) -> float:
        return self.box[1]

    @property
    def y2(self) -> float:
        return self.box[2]

    @property
    def x2(self) -> float:
        return self.box[3]


@dataclass(frozen=True)
class DetectionBatch:
    """
    Parallel arrays of detections for one frame.

    Attributes:
        boxes: float32 array of shape (N, 4), rows are (y1, x1, y2, x2).
        scores: float32 array of shape (N,).
        classes: int32 array of shape (N,).
    """
    boxes: np.ndarray
    scores: np.ndarray
    classes: np.ndarray

    @classmethod
    def empty(cls) -> "DetectionBatch":
        return cls(
            boxes=np.zeros((0, 4), dtype=np.float32),
            scores=np.zeros((0,), dtype=np.float32),
            classes=np.zeros((0,), dtype=np.int32),
        )

    @classmethod
    def from_detections(cls, detections: Sequence[Detection]) -> "DetectionBatch":
        """Adapter: build parallel arrays from Detection objects."""
        if not detections:
            return cls.empty()
        return cls(
            boxes=np.array([d.box for d in detections], dtype=np.float32),
            scores=np.array([d.score for d in detections], dtype=np.float32),
            classes=np.array([d.class_index for d in detections], dtype=np.int32),
        )

    def __len__(self) -> int:
        return int(self.scores.shape[0])

    def __iter__(self) -> Iterator[Detection]:
        for box, score, cls in zip(self.boxes, self.scores, self.classes):
            yield Detection(
                box=tuple(float(v) for v in box),
                score=float(score),
                class_index=int(cls),
            )

    def gather(self, indices: Sequence[int]) -> "DetectionBatch":
        """Select rows in the given order."""
        idx = np.asarray(indices, dtype=np.int64)
        return DetectionBatch(
            boxes=self.boxes[idx].reshape(-1, 4),
            scores=self.scores[idx],
            classes=self.classes[idx],
        )


@dataclass(frozen=True)
class FilteredDetection:
    """
    A detection that survived suppression, located in source pixels.

    Attributes:
        id: Position of the detection within its frame's set.
        detection: The normalized detection.
        center_x: Box center x in source-frame pixels.
        center_y: Box center y in source-frame pixels.
        pixel_box: (x1, y1, x2, y2) in source-frame pixels.
    """
    id: int
    detection: Detection
    center_x: float
    center_y: float
    pixel_box: Tuple[float, float, float, float]

    @property
    def score(self) -> float:
        return self.detection.score

    @property
    def class_index(self) -> int:
        return self.detection.class_index

    @property
    def center(self) -> Tuple[float, float]:
        return (self.center_x, self.center_y)


def locate_detections(
    batch: DetectionBatch,
    ratios: Tuple[float, float],
    size: Tuple[int, int],
) -> List[FilteredDetection]:
    """
    Map a suppressed batch to source pixels.

    The padding canvas side is ratio * source side on either axis, so a
    normalized coordinate maps back as ``norm * ratio * side``.

    Args:
        batch: Suppressed detections in selection order.
        ratios: (x_ratio, y_ratio) from preprocessing.
        size: Source (width, height).
    """
    x_ratio, y_ratio = ratios
    width, height = size
    x_scale = x_ratio * width
    y_scale = y_ratio * height

    out: List[FilteredDetection] = []
    for idx, det in enumerate(batch):
        px1, px2 = det.x1 * x_scale, det.x2 * x_scale
        py1, py2 = det.y1 * y_scale, det.y2 * y_scale
        out.append(
            FilteredDetection(
                id=idx,
                detection=det,
                center_x=(px1 + px2) / 2.0,
                center_y=(py1 + py2) / 2.0,
                pixel_box=(px1, py1, px2, py2),
            )
        )
    return out
