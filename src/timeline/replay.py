"""
Replay of a processed timeline at an arbitrary playback time.

The trail is cumulative (every frame up to the playback time contributes its
center points); the boxes are instantaneous (only the latest frame at or
before the playback time). Nothing here mutates the cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from models.result import FrameResult, Marker
from render.markers import render_markers, track_marker
from render.palette import DEFAULT_LABELS

from .cache import TimelineCache


@dataclass(frozen=True)
class ReplayView:
    """
    Everything needed to draw the timeline at one playback time.

    Attributes:
        time: Requested playback time.
        frame_time: Time of the frame supplying the boxes (None if none).
        trail: Cumulative detection center markers.
        track_trail: Cumulative tracked-object markers.
        boxes: Markers (with boxes) of the current frame.
    """
    time: float
    frame_time: Optional[float]
    trail: Tuple[Marker, ...]
    track_trail: Tuple[Marker, ...]
    boxes: Tuple[Marker, ...]


def replay_results(
    results: Sequence[FrameResult],
    current: Optional[FrameResult],
    t: float,
    draw_boxes: bool = True,
    labels: Sequence[str] = DEFAULT_LABELS,
) -> ReplayView:
    """Fold already-selected results into a view."""
    trail = []
    track_trail = []
    for result in results:
        trail.extend(render_markers(result.detections, draw_boxes=False, labels=labels))
        if result.track_point is not None:
            track_trail.append(track_marker(result.track_point))

    boxes: Tuple[Marker, ...] = ()
    if current is not None:
        boxes = tuple(render_markers(current.detections, draw_boxes=draw_boxes, labels=labels))
        if current.track_point is not None:
            boxes = boxes + (track_marker(current.track_point, draw_boxes=draw_boxes),)

    return ReplayView(
        time=t,
        frame_time=current.time if current is not None else None,
        trail=tuple(trail),
        track_trail=tuple(track_trail),
        boxes=boxes,
    )


def replay(
    cache: TimelineCache,
    t: float,
    draw_boxes: bool = True,
    labels: Sequence[str] = DEFAULT_LABELS,
) -> ReplayView:
    """
    Reconstruct the view at playback time t from the cache.

    Args:
        cache: Processed timeline.
        t: Playback time in seconds.
        draw_boxes: Attach boxes to the current frame's markers.
        labels: Class names indexed by class.
    """
    results = cache.up_to(t)
    # The latest frame at or before t is the last of the trail.
    current = results[-1] if results else None
    return replay_results(
        results,
        current,
        t,
        draw_boxes=draw_boxes,
        labels=labels,
    )
