"""
Greedy non-maximum suppression over decoded detections.

Boxes are (y1, x1, y2, x2). The overlap test ignores class index unless
class_aware is set, which runs the same greedy pass per class bucket.
"""

from __future__ import annotations

from typing import List

import numpy as np

from models.detection import DetectionBatch


def _corners(boxes: np.ndarray):
    # Tolerate boxes given with flipped corners.
    y1 = np.minimum(boxes[..., 0], boxes[..., 2])
    x1 = np.minimum(boxes[..., 1], boxes[..., 3])
    y2 = np.maximum(boxes[..., 0], boxes[..., 2])
    x2 = np.maximum(boxes[..., 1], boxes[..., 3])
    return y1, x1, y2, x2


def iou(a, b) -> float:
    """
    Intersection over Union of two (y1, x1, y2, x2) boxes.

    Returns:
        IoU value between 0 and 1 (0 when the union is empty).
    """
    return float(_iou_one_to_many(np.asarray(a, dtype=np.float64), np.asarray([b], dtype=np.float64))[0])


def _iou_one_to_many(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    by1, bx1, by2, bx2 = _corners(box)
    oy1, ox1, oy2, ox2 = _corners(others)

    inter_h = np.clip(np.minimum(by2, oy2) - np.maximum(by1, oy1), 0.0, None)
    inter_w = np.clip(np.minimum(bx2, ox2) - np.maximum(bx1, ox1), 0.0, None)
    intersection = inter_h * inter_w

    area = (by2 - by1) * (bx2 - bx1)
    other_areas = (oy2 - oy1) * (ox2 - ox1)
    union = area + other_areas - intersection

    out = np.zeros_like(intersection, dtype=np.float64)
    np.divide(intersection, union, out=out, where=union > 0)
    return out


def _greedy(
    boxes: np.ndarray,
    scores: np.ndarray,
    candidates: np.ndarray,
    max_output_size: int,
    iou_threshold: float,
) -> List[int]:
    """Greedy selection over candidate indices already sorted by score."""
    selected: List[int] = []
    remaining = candidates
    while remaining.size > 0 and len(selected) < max_output_size:
        best = int(remaining[0])
        selected.append(best)
        rest = remaining[1:]
        if rest.size == 0:
            break
        overlaps = _iou_one_to_many(boxes[best], boxes[rest])
        remaining = rest[overlaps <= iou_threshold]
    return selected


def select_indices(
    boxes: np.ndarray,
    scores: np.ndarray,
    classes: np.ndarray,
    max_output_size: int = 100,
    iou_threshold: float = 0.5,
    score_threshold: float = 0.25,
    class_aware: bool = False,
) -> List[int]:
    """
    Indices of surviving detections in selection order.

    Ties in score are broken by original index (stable sort).
    """
    if max_output_size <= 0 or scores.shape[0] == 0:
        return []

    boxes = np.asarray(boxes, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)

    candidates = np.flatnonzero(scores >= score_threshold)
    order = np.argsort(-scores[candidates], kind="stable")
    candidates = candidates[order]

    if not class_aware:
        return _greedy(boxes, scores, candidates, max_output_size, iou_threshold)

    # Per-class buckets, merged back by score then original index.
    selected: List[int] = []
    for cls in np.unique(classes[candidates]):
        bucket = candidates[classes[candidates] == cls]
        selected.extend(_greedy(boxes, scores, bucket, max_output_size, iou_threshold))
    selected.sort(key=lambda i: (-scores[i], i))
    return selected[:max_output_size]


def non_max_suppression(
    batch: DetectionBatch,
    max_output_size: int = 100,
    iou_threshold: float = 0.5,
    score_threshold: float = 0.25,
    class_aware: bool = False,
) -> DetectionBatch:
    """
    Remove redundant overlapping detections, keeping highest-score survivors.

    Args:
        batch: Decoded detections.
        max_output_size: Maximum number of detections to keep.
        iou_threshold: Boxes overlapping a selected box above this are removed.
        score_threshold: Detections scoring below this are discarded first.
        class_aware: Only suppress overlaps within the same class.

    Returns:
        The surviving detections in selection order.
    """
    keep = select_indices(
        batch.boxes,
        batch.scores,
        batch.classes,
        max_output_size=max_output_size,
        iou_threshold=iou_threshold,
        score_threshold=score_threshold,
        class_aware=class_aware,
    )
    if not keep:
        return DetectionBatch.empty()
    return batch.gather(keep)
