"""
Marker emission for display and the replay API.

Pure functions from filtered detections (or track points) to display
markers; no pixel drawing happens here.
"""

from __future__ import annotations

from typing import List, Sequence

from models.detection import FilteredDetection
from models.result import Marker
from models.track import TrackPoint

from .palette import DEFAULT_LABELS, color_for, label_for

TRACK_MARKER_ID = -1
TRACK_COLOR = "#00C2FF"


def render_markers(
    detections: Sequence[FilteredDetection],
    draw_boxes: bool = False,
    labels: Sequence[str] = DEFAULT_LABELS,
) -> List[Marker]:
    """
    Build one marker per detection.

    Args:
        detections: Filtered detections of one frame.
        draw_boxes: Attach pixel boxes to the markers.
        labels: Class names indexed by class.
    """
    return [
        Marker(
            id=det.id,
            x=det.center_x,
            y=det.center_y,
            class_name=label_for(det.class_index, labels),
            score=det.score,
            color=color_for(det.class_index),
            box=det.pixel_box if draw_boxes else None,
        )
        for det in detections
    ]


def track_marker(point: TrackPoint, draw_boxes: bool = False, label: str = "track") -> Marker:
    """Marker for the tracked object's estimated position."""
    return Marker(
        id=TRACK_MARKER_ID,
        x=point.x,
        y=point.y,
        class_name=label,
        score=1.0 if point.matched else 0.0,
        color=TRACK_COLOR,
        box=point.box if draw_boxes else None,
    )
