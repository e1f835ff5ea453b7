"""
Typed models for the frame tracker.

Frames, detections, track state, per-frame results, configuration and the
error taxonomy shared by every pipeline stage.
"""

from .frame import FrameData
from .detection import Detection, DetectionBatch, FilteredDetection, locate_detections
from .track import TrackPoint, TrackSeed, TrackState, TrackStatus
from .result import FrameResult, Marker, RunOutcome, RunResult, RunStats
from .errors import (
    FrameTrackerError,
    InvalidAssociationState,
    NoVideoInfoAvailable,
    SeekError,
    SeekFailed,
    SeekTimeout,
    ShapeMismatch,
)
from .config import (
    Config,
    ModelConfig,
    VideoConfig,
    SuppressionConfig,
    TrackingConfig,
    ProcessingConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "DetectionBatch",
    "FilteredDetection",
    "locate_detections",
    # Tracking
    "TrackPoint",
    "TrackSeed",
    "TrackState",
    "TrackStatus",
    # Results
    "FrameResult",
    "Marker",
    "RunOutcome",
    "RunResult",
    "RunStats",
    # Errors
    "FrameTrackerError",
    "InvalidAssociationState",
    "NoVideoInfoAvailable",
    "SeekError",
    "SeekFailed",
    "SeekTimeout",
    "ShapeMismatch",
    # Config
    "Config",
    "ModelConfig",
    "VideoConfig",
    "SuppressionConfig",
    "TrackingConfig",
    "ProcessingConfig",
    "WebConfig",
]
