"""
Tests for non-maximum suppression.
"""

import numpy as np
import pytest

from inference.nms import iou, non_max_suppression, select_indices
from models.detection import Detection, DetectionBatch


def _batch(rows, classes=None):
    """rows: (y1, x1, y2, x2, score)"""
    detections = [
        Detection(box=tuple(r[:4]), score=r[4], class_index=(classes[i] if classes else 0))
        for i, r in enumerate(rows)
    ]
    return DetectionBatch.from_detections(detections)


class TestIoU:
    """Intersection over union."""

    def test_identical_boxes(self):
        assert iou((0, 0, 1, 1), (0, 0, 1, 1)) == pytest.approx(1.0)

    def test_disjoint_boxes(self):
        assert iou((0, 0, 1, 1), (2, 2, 3, 3)) == 0.0

    def test_partial_overlap(self):
        """Half-overlapping unit boxes: 0.5 / 1.5."""
        assert iou((0, 0, 1, 1), (0, 0.5, 1, 1.5)) == pytest.approx(1 / 3)

    def test_degenerate_boxes(self):
        """Zero-area boxes have zero IoU rather than NaN."""
        assert iou((0, 0, 0, 0), (0, 0, 0, 0)) == 0.0


class TestSuppression:
    """Greedy selection behaviour."""

    def test_suppresses_overlapping_lower_score(self):
        batch = _batch([
            (0, 0, 1, 1, 0.9),
            (0, 0.05, 1, 1.05, 0.8),
            (2, 2, 3, 3, 0.7),
        ])
        kept = non_max_suppression(batch, iou_threshold=0.45, score_threshold=0.2)
        np.testing.assert_allclose(kept.scores, [0.9, 0.7], rtol=1e-6)

    def test_score_threshold_filters_first(self):
        batch = _batch([
            (0, 0, 1, 1, 0.1),
            (2, 2, 3, 3, 0.5),
        ])
        kept = non_max_suppression(batch, score_threshold=0.2)
        assert len(kept) == 1
        assert kept.scores[0] == pytest.approx(0.5)

    def test_max_output_size(self):
        rows = [(i * 2, 0, i * 2 + 1, 1, 0.9 - i * 0.01) for i in range(10)]
        kept = non_max_suppression(_batch(rows), max_output_size=3, score_threshold=0.0)
        assert len(kept) == 3

    def test_selection_order_by_descending_score(self):
        rows = [(0, 0, 1, 1, 0.3), (2, 2, 3, 3, 0.9), (4, 4, 5, 5, 0.6)]
        kept = non_max_suppression(_batch(rows), score_threshold=0.0)
        np.testing.assert_allclose(kept.scores, [0.9, 0.6, 0.3], rtol=1e-6)

    def test_ties_keep_original_order(self):
        boxes = np.array([[0, 0, 1, 1], [2, 2, 3, 3], [4, 4, 5, 5]], dtype=np.float64)
        scores = np.array([0.5, 0.5, 0.5])
        classes = np.zeros(3, dtype=np.int32)
        assert select_indices(boxes, scores, classes, score_threshold=0.0) == [0, 1, 2]

    def test_overlap_equal_to_threshold_is_kept(self):
        """Only overlaps strictly above the threshold are suppressed."""
        boxes = np.array([[0, 0, 1, 1], [0, 0.5, 1, 1.5]], dtype=np.float64)
        scores = np.array([0.9, 0.8])
        classes = np.zeros(2, dtype=np.int32)
        kept = select_indices(boxes, scores, classes, iou_threshold=1 / 3, score_threshold=0.0)
        assert kept == [0, 1]

    def test_empty_batch(self):
        kept = non_max_suppression(DetectionBatch.empty())
        assert len(kept) == 0

    def test_nothing_above_threshold(self):
        kept = non_max_suppression(_batch([(0, 0, 1, 1, 0.1)]), score_threshold=0.5)
        assert len(kept) == 0
        assert kept.boxes.shape == (0, 4)

    def test_class_agnostic_by_default(self):
        batch = _batch([(0, 0, 1, 1, 0.9), (0, 0, 1, 1, 0.8)], classes=[0, 1])
        assert len(non_max_suppression(batch, score_threshold=0.0)) == 1

    def test_class_aware(self):
        """With class_aware, overlaps across classes survive."""
        batch = _batch([(0, 0, 1, 1, 0.9), (0, 0, 1, 1, 0.8)], classes=[0, 1])
        kept = non_max_suppression(batch, score_threshold=0.0, class_aware=True)
        assert kept.classes.tolist() == [0, 1]


class TestSuppressionProperties:
    """Invariants over random detections."""

    @pytest.fixture
    def random_batch(self):
        rng = np.random.default_rng(0)
        y1 = rng.uniform(0, 0.8, 200)
        x1 = rng.uniform(0, 0.8, 200)
        h = rng.uniform(0.05, 0.2, 200)
        w = rng.uniform(0.05, 0.2, 200)
        return DetectionBatch(
            boxes=np.stack([y1, x1, y1 + h, x1 + w], axis=-1).astype(np.float32),
            scores=rng.uniform(0, 1, 200).astype(np.float32),
            classes=np.zeros(200, dtype=np.int32),
        )

    def test_survivors_do_not_overlap(self, random_batch):
        kept = non_max_suppression(random_batch, max_output_size=500, iou_threshold=0.45, score_threshold=0.2)
        for i in range(len(kept)):
            for j in range(i + 1, len(kept)):
                assert iou(kept.boxes[i], kept.boxes[j]) <= 0.45 + 1e-6

    def test_survivors_meet_threshold_and_cap(self, random_batch):
        kept = non_max_suppression(random_batch, max_output_size=20, iou_threshold=0.45, score_threshold=0.2)
        assert len(kept) <= 20
        assert np.all(kept.scores >= 0.2)
        assert np.all(np.diff(kept.scores) <= 0)
