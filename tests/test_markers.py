"""
Tests for marker emission and overlay drawing.
"""

import numpy as np

from models.detection import Detection, FilteredDetection
from models.track import TrackPoint, TrackStatus
from render.markers import TRACK_COLOR, render_markers, track_marker
from render.overlay import draw_overlay
from render.palette import PALETTE, color_for, hex_to_bgr, label_for


def make_det(det_id, x, y, class_index=0):
    return FilteredDetection(
        id=det_id,
        detection=Detection(box=(0.0, 0.0, 0.1, 0.1), score=0.75, class_index=class_index),
        center_x=x,
        center_y=y,
        pixel_box=(x - 5, y - 5, x + 5, y + 5),
    )


class TestPalette:
    def test_palette_size(self):
        assert len(PALETTE) == 20

    def test_color_wraps(self):
        assert color_for(0) == PALETTE[0]
        assert color_for(21) == PALETTE[1]

    def test_label_fallback(self):
        assert label_for(0, ["car", "bus"]) == "car"
        assert label_for(5, ["car", "bus"]) == "5"

    def test_hex_to_bgr(self):
        assert hex_to_bgr("#FF3838") == (0x38, 0x38, 0xFF)
        assert hex_to_bgr("not-a-color") is None


class TestMarkers:
    def test_one_marker_per_detection(self):
        markers = render_markers([make_det(0, 10, 20), make_det(1, 30, 40, class_index=1)], labels=["a", "b"])

        assert [m.id for m in markers] == [0, 1]
        assert [m.class_name for m in markers] == ["a", "b"]
        assert markers[1].color == PALETTE[1]
        assert markers[0].score == 0.75
        assert markers[0].box is None

    def test_boxes_attached_on_request(self):
        markers = render_markers([make_det(0, 10, 20)], draw_boxes=True)
        assert markers[0].box == (5, 15, 15, 25)

    def test_track_marker(self):
        marker = track_marker(TrackPoint(5.0, 6.0, TrackStatus.TRACKING, (1, 2, 3, 4), 0), draw_boxes=True)
        assert marker.id == -1
        assert marker.color == TRACK_COLOR
        assert marker.box == (1, 2, 3, 4)
        assert marker.score == 1.0


class TestOverlay:
    def test_draws_on_a_copy(self):
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        trail = render_markers([make_det(0, 20, 20)])
        boxes = render_markers([make_det(0, 60, 60)], draw_boxes=True)

        canvas = draw_overlay(frame, trail, boxes)

        assert canvas.shape == frame.shape
        assert frame.sum() == 0
        assert canvas[20, 20].sum() > 0
        assert canvas[55, 60].sum() > 0  # top edge of the box
