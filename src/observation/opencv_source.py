"""
OpenCV-based seekable video file source.

Seeks by presentation time (CAP_PROP_POS_MSEC) and decodes the frame at the
reached position. Seeks run on a worker thread when an event loop is
running, so the loop stays responsive while the decoder works.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from models.frame import FrameData
from .base import ObservationConfig, SeekableSource
from .video_info import info_from_capture


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV video file sources.

    Attributes:
        path: Video file path.
        swap_rb: Swap R/B channels after decoding.
    """
    path: str = ""
    swap_rb: bool = False


class OpenCVVideoSource(SeekableSource):
    """
    Seekable source backed by cv2.VideoCapture.

    Example:
        config = OpenCVSourceConfig(source_id="clip", path="clip.mp4")
        with OpenCVVideoSource(config) as source:
            source.set_position(1.5)
            frame = source.read_frame()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._cap_lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None

    @property
    def path(self) -> str:
        return self._opencv_config.path

    def open(self) -> None:
        """Open the video file and read its metadata."""
        if self._is_open:
            return

        if not os.path.exists(self.path):
            raise RuntimeError(f"Video file not found: {self.path}")

        cap = cv2.VideoCapture(self.path)
        if not cap.isOpened():
            raise RuntimeError(f"Failed to open video {self.path}")

        self._cap = cap
        self._info = info_from_capture(cap)
        self._is_open = True
        self._frame_index = 0
        self._current_position = 0.0

        if self._info is None:
            logging.warning(f"OpenCVVideoSource opened without fps/duration: {self.path}")
        else:
            logging.info(
                f"OpenCVVideoSource opened: source_id={self.source_id}, path={self.path}, "
                f"fps={self._info.fps:.3f}, duration={self._info.duration:.3f}s, "
                f"size={self._info.width}x{self._info.height}"
            )

    def _seek(self, t: float) -> float:
        with self._cap_lock:
            if self._cap is None:
                raise RuntimeError("Source is not open")

            self._cap.set(cv2.CAP_PROP_POS_MSEC, t * 1000.0)
            ret, frame = self._cap.read()
            if not ret or frame is None:
                raise RuntimeError(f"No frame decoded at t={t:.3f}")

            if self._opencv_config.swap_rb:
                frame = frame[..., ::-1].copy()
            self._frame = frame

            reported = self._cap.get(cv2.CAP_PROP_POS_MSEC) / 1000.0
            # Some backends report 0 after a seek; fall back to the request.
            return reported if reported > 0 else t

    def read_frame(self) -> Optional[FrameData]:
        """Frame decoded by the last completed seek."""
        if not self._is_open or self._frame is None:
            return None
        return FrameData.from_numpy(
            self._frame,
            timestamp=self._current_position,
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        """Release the capture."""
        with self._cap_lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
        self._frame = None
        if self._is_open:
            logging.info(f"OpenCVVideoSource closed: source_id={self.source_id}")
        self._is_open = False
