"""
FrameData model for decoded video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class FrameData:
    """
    A decoded video frame handed to the pipeline.

    The pixel buffer belongs to the video source; the pipeline only reads it.

    Attributes:
        frame: Pixel data as a numpy array (H x W x 3, BGR).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Presentation time in seconds, as reported by the source.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
