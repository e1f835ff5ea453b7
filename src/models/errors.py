"""
Error taxonomy for the frame tracking pipeline.

Every error can carry the frame time it happened at, so callers can report
"processing failed at t=...". Track loss is not an error: it is reported
through RunResult.outcome.
"""

from __future__ import annotations

from typing import Optional


class FrameTrackerError(Exception):
    """Base error for the pipeline."""

    def __init__(self, message: str, time: Optional[float] = None):
        super().__init__(message)
        self.message = message
        self.time = time

    def at(self, time: float) -> "FrameTrackerError":
        """Attach a frame time if none was recorded yet and return self."""
        if self.time is None:
            self.time = time
        return self

    def __str__(self) -> str:
        if self.time is None:
            return self.message
        return f"{self.message} (t={self.time:.3f})"


class ShapeMismatch(FrameTrackerError):
    """Raw model output does not match the single-class (N,6)/(N,1) layout."""


class SeekError(FrameTrackerError):
    """A seek did not bring the source to the requested position."""

    def __init__(
        self,
        message: str,
        time: Optional[float] = None,
        last_processed_time: Optional[float] = None,
    ):
        super().__init__(message, time=time)
        self.last_processed_time = last_processed_time


class SeekTimeout(SeekError):
    """The video source never signalled seek completion."""


class SeekFailed(SeekError):
    """The video source reported an error while seeking."""


class NoVideoInfoAvailable(FrameTrackerError):
    """Frames-per-second or duration metadata is missing."""


class InvalidAssociationState(FrameTrackerError):
    """Tracking was requested without an active track."""
