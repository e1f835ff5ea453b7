"""
Track models for single-object tracking state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


class TrackStatus(str, Enum):
    """Lifecycle of a tracked object."""
    TRACKING = "tracking"
    COASTING = "coasting"
    LOST = "lost"


@dataclass(frozen=True)
class TrackSeed:
    """
    Operator-selected detection used to start a tracking session.

    Attributes:
        x: Center x in source pixels.
        y: Center y in source pixels.
        time: Frame time the detection was selected on.
        class_index: Class of the selected detection.
        id: Detection id within the selected frame.
    """
    x: float
    y: float
    time: float
    class_index: int = 0
    id: int = 0


@dataclass
class TrackState:
    """
    Kalman state of a tracked object, owned by one ObjectTracker.

    Attributes:
        id: Track identifier (the seed's detection id).
        class_index: Class the track associates against.
        mean: State vector [x, y, vx, vy].
        covariance: 4x4 state covariance.
        last_update_time: Time of the last successful correction.
        missed_frame_count: Consecutive frames without an association.
    """
    id: int
    class_index: int
    mean: np.ndarray
    covariance: np.ndarray
    last_update_time: float
    missed_frame_count: int = 0
    status: TrackStatus = TrackStatus.TRACKING

    @classmethod
    def from_seed(
        cls,
        seed: TrackSeed,
        position_variance: float = 1.0,
        velocity_variance: float = 1000.0,
    ) -> "TrackState":
        """Trust the selected position, not yet any velocity."""
        return cls(
            id=seed.id,
            class_index=seed.class_index,
            mean=np.array([seed.x, seed.y, 0.0, 0.0], dtype=np.float64),
            covariance=np.diag([
                position_variance,
                position_variance,
                velocity_variance,
                velocity_variance,
            ]).astype(np.float64),
            last_update_time=seed.time,
        )

    @property
    def position(self) -> Tuple[float, float]:
        return (float(self.mean[0]), float(self.mean[1]))

    @property
    def velocity(self) -> Tuple[float, float]:
        return (float(self.mean[2]), float(self.mean[3]))


@dataclass(frozen=True)
class TrackPoint:
    """
    Tracker output for one frame.

    Attributes:
        x: Estimated center x in source pixels.
        y: Estimated center y in source pixels.
        status: Tracker status after this frame.
        box: Matched detection box (x1, y1, x2, y2) in source pixels, if any.
        detection_id: Id of the matched detection, if any.
        missed_frame_count: Consecutive misses after this frame.
    """
    x: float
    y: float
    status: TrackStatus
    box: Optional[Tuple[float, float, float, float]] = None
    detection_id: Optional[int] = None
    missed_frame_count: int = 0

    @property
    def matched(self) -> bool:
        return self.detection_id is not None
