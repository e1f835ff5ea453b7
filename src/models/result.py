"""
Per-frame results, render markers and run outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .detection import FilteredDetection
from .track import TrackPoint


@dataclass(frozen=True)
class FrameResult:
    """
    Everything recorded for one processed frame.

    Immutable once appended to the timeline cache.

    Attributes:
        time: Seek-reported frame time in seconds.
        detections: Filtered detections in selection order.
        ratios: (x_ratio, y_ratio) used to locate the detections.
        track_point: Tracker output when a tracking session was active.
    """
    time: float
    detections: Tuple[FilteredDetection, ...] = ()
    ratios: Tuple[float, float] = (1.0, 1.0)
    track_point: Optional[TrackPoint] = None

    def find(self, detection_id: int) -> Optional[FilteredDetection]:
        """Look up a detection by its id within this frame."""
        for det in self.detections:
            if det.id == detection_id:
                return det
        return None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "time": self.time,
            "ratios": list(self.ratios),
            "detections": [
                {
                    "id": det.id,
                    "x": det.center_x,
                    "y": det.center_y,
                    "box": list(det.pixel_box),
                    "score": det.score,
                    "class_index": det.class_index,
                }
                for det in self.detections
            ],
        }
        if self.track_point is not None:
            tp = self.track_point
            d["track_point"] = {
                "x": tp.x,
                "y": tp.y,
                "status": tp.status.value,
                "box": list(tp.box) if tp.box is not None else None,
                "detection_id": tp.detection_id,
                "missed_frame_count": tp.missed_frame_count,
            }
        return d


@dataclass(frozen=True)
class Marker:
    """
    Display marker for overlays and the replay API.

    Attributes:
        id: Detection id within its frame (-1 for track points).
        x: Center x in source pixels.
        y: Center y in source pixels.
        class_name: Human-readable label.
        score: Detection confidence (0-1).
        color: Hex color from the fixed palette.
        box: (x1, y1, x2, y2) when boxes are requested.
    """
    id: int
    x: float
    y: float
    class_name: str
    score: float
    color: str
    box: Optional[Tuple[float, float, float, float]] = None


class RunOutcome(str, Enum):
    """How a processing run ended."""
    COMPLETED = "completed"
    TRACK_LOST = "track_lost"
    STOPPED = "stopped"


@dataclass
class RunStats:
    """Running statistics for a processing run."""
    frame_count: int = 0
    detection_count: int = 0
    elapsed: float = 0.0

    @property
    def fps(self) -> float:
        """Processed frames per wall-clock second."""
        if self.elapsed <= 0:
            return 0.0
        return self.frame_count / self.elapsed


@dataclass
class RunResult:
    """
    Result of one driver run.

    Attributes:
        results: FrameResults gathered during the run, in playback order.
        outcome: Why the run ended.
        last_time: Time of the last processed frame (None if none).
        stats: Frame/detection counts and elapsed time.
    """
    results: List[FrameResult] = field(default_factory=list)
    outcome: RunOutcome = RunOutcome.COMPLETED
    last_time: Optional[float] = None
    stats: RunStats = field(default_factory=RunStats)

    @property
    def track_lost(self) -> bool:
        return self.outcome == RunOutcome.TRACK_LOST
