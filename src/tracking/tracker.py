"""
Single-object tracking with a constant-velocity Kalman filter.

The tracker follows one operator-selected object. Each frame it projects the
last corrected state to the frame time, associates the nearest same-class
detection inside the gating distance, and either corrects on it or coasts.
After more than ``max_missed_frames`` consecutive misses the track is Lost,
which is terminal.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from models.config import TrackingConfig
from models.detection import FilteredDetection
from models.errors import InvalidAssociationState
from models.result import FrameResult
from models.track import TrackPoint, TrackSeed, TrackState, TrackStatus

_MEASUREMENT_MATRIX = np.array([
    [1, 0, 0, 0],
    [0, 1, 0, 0],
], dtype=np.float64)


def _transition(dt: float) -> np.ndarray:
    return np.array([
        [1, 0, dt, 0],
        [0, 1, 0, dt],
        [0, 0, 1, 0],
        [0, 0, 0, 1],
    ], dtype=np.float64)


class ObjectTracker:
    """
    Tracks one object across frames.

    States:
        TRACKING: the last frame produced an association.
        COASTING: predicting from the motion model alone (missed_frame_count > 0).
        LOST: terminal; more than max_missed_frames consecutive misses.

    Example:
        tracker = ObjectTracker(select_detection(first_frame, detection_id=2))
        for result in frames:
            point = tracker.step(result.detections, result.time)
            if point.status is TrackStatus.LOST:
                break
    """

    def __init__(
        self,
        seed: TrackSeed,
        max_missed_frames: int = 10,
        gating_distance: float = 100.0,
        position_variance: float = 1.0,
        velocity_variance: float = 1000.0,
        process_noise: float = 1.0,
        measurement_noise: float = 1.0,
    ):
        """
        Initialize the tracker from an operator-selected detection.

        Args:
            seed: Selected detection (center, time, class, id).
            max_missed_frames: Consecutive misses tolerated before Lost.
            gating_distance: Maximum center distance in pixels for a match.
            position_variance: Initial position variance.
            velocity_variance: Initial velocity variance.
            process_noise: Process noise per second of prediction.
            measurement_noise: Variance of observed centers.
        """
        self.max_missed_frames = max_missed_frames
        self.gating_distance = gating_distance
        self.process_noise = process_noise

        self.state = TrackState.from_seed(
            seed,
            position_variance=position_variance,
            velocity_variance=velocity_variance,
        )

        self._kf = cv2.KalmanFilter(4, 2, 0, cv2.CV_64F)
        self._kf.measurementMatrix = _MEASUREMENT_MATRIX.copy()
        self._kf.measurementNoiseCov = np.eye(2, dtype=np.float64) * measurement_noise
        self._prior_time: Optional[float] = None

        logging.info(
            f"Tracker started: id={seed.id} class={seed.class_index} "
            f"at ({seed.x:.1f}, {seed.y:.1f}) t={seed.time:.3f}"
        )

    @classmethod
    def from_config(cls, seed: TrackSeed, cfg: TrackingConfig) -> "ObjectTracker":
        return cls(
            seed,
            max_missed_frames=cfg.max_missed_frames,
            gating_distance=cfg.gating_distance,
            position_variance=cfg.position_variance,
            velocity_variance=cfg.velocity_variance,
            process_noise=cfg.process_noise,
            measurement_noise=cfg.measurement_noise,
        )

    @property
    def id(self) -> int:
        return self.state.id

    @property
    def status(self) -> TrackStatus:
        return self.state.status

    @property
    def is_lost(self) -> bool:
        return self.state.status == TrackStatus.LOST

    @property
    def missed_frame_count(self) -> int:
        return self.state.missed_frame_count

    def predict(self, t: float) -> Tuple[float, float]:
        """
        Project the last corrected state to time t.

        The projection is kept as the prior for a following update() at the
        same time; the corrected state itself is not modified.
        """
        dt = t - self.state.last_update_time
        self._kf.transitionMatrix = _transition(dt)
        self._kf.processNoiseCov = np.eye(4, dtype=np.float64) * self.process_noise * abs(dt)
        self._kf.statePost = self.state.mean.reshape(4, 1).copy()
        self._kf.errorCovPost = self.state.covariance.copy()

        prior = self._kf.predict()
        self._prior_time = t
        return float(prior[0, 0]), float(prior[1, 0])

    def update(self, measurement: Tuple[float, float], t: float) -> Tuple[float, float]:
        """Correct with an observed center at time t and reset the miss counter."""
        if self._prior_time != t:
            self.predict(t)

        observation = np.array([[measurement[0]], [measurement[1]]], dtype=np.float64)
        corrected = self._kf.correct(observation)

        self.state.mean = corrected.reshape(4).copy()
        self.state.covariance = np.array(self._kf.errorCovPost, dtype=np.float64)
        self.state.last_update_time = t
        self.state.missed_frame_count = 0
        self.state.status = TrackStatus.TRACKING
        self._prior_time = None
        return self.state.position

    def increment_missed_frames(self) -> bool:
        """
        Record a frame without association.

        Returns:
            True while the track is alive (Coasting), False once it is Lost.
        """
        self.state.missed_frame_count += 1
        if self.state.missed_frame_count > self.max_missed_frames:
            if self.state.status != TrackStatus.LOST:
                logging.info(
                    f"Track {self.state.id} lost after {self.state.missed_frame_count} missed frames"
                )
            self.state.status = TrackStatus.LOST
            return False
        self.state.status = TrackStatus.COASTING
        return True

    def associate(
        self,
        detections: Sequence[FilteredDetection],
        predicted: Tuple[float, float],
    ) -> Optional[FilteredDetection]:
        """Nearest same-class detection inside the gating distance, if any."""
        best: Optional[FilteredDetection] = None
        best_dist = math.inf
        for det in detections:
            if det.class_index != self.state.class_index:
                continue
            dist = math.hypot(det.center_x - predicted[0], det.center_y - predicted[1])
            if dist < best_dist:
                best = det
                best_dist = dist

        if best is not None and best_dist < self.gating_distance:
            return best
        return None

    def step(self, detections: Sequence[FilteredDetection], t: float) -> TrackPoint:
        """
        Predict, associate, then update or coast for one frame.

        Raises:
            InvalidAssociationState: If the track is already Lost.
        """
        if self.is_lost:
            raise InvalidAssociationState(f"Track {self.state.id} is lost", time=t)

        predicted = self.predict(t)
        match = self.associate(detections, predicted)

        if match is not None:
            x, y = self.update(match.center, t)
            return TrackPoint(
                x=x,
                y=y,
                status=TrackStatus.TRACKING,
                box=match.pixel_box,
                detection_id=match.id,
                missed_frame_count=0,
            )

        self.increment_missed_frames()
        return TrackPoint(
            x=predicted[0],
            y=predicted[1],
            status=self.state.status,
            missed_frame_count=self.state.missed_frame_count,
        )


def select_detection(frame: Optional[FrameResult], detection_id: int) -> TrackSeed:
    """
    Build a tracking seed from a detection picked on a displayed frame.

    Raises:
        InvalidAssociationState: If there is no frame or no such detection.
    """
    if frame is None:
        raise InvalidAssociationState("No frame available to select a detection from")

    det = frame.find(detection_id)
    if det is None:
        raise InvalidAssociationState(
            f"Detection {detection_id} not found in frame",
            time=frame.time,
        )

    return TrackSeed(
        x=det.center_x,
        y=det.center_y,
        time=frame.time,
        class_index=det.class_index,
        id=det.id,
    )
