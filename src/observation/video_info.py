"""
Video metadata probing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import cv2


@dataclass(frozen=True)
class VideoInfo:
    """
    Metadata needed before frame-stepping a video.

    Attributes:
        fps: Frames per second.
        frame_count: Number of frames in the container.
        duration: Duration in seconds.
        width: Frame width in pixels.
        height: Frame height in pixels.
        format: FourCC codec string, if known.
    """
    fps: float
    frame_count: int
    duration: float
    width: int = 0
    height: int = 0
    format: Optional[str] = None

    @property
    def frame_duration(self) -> float:
        return 1.0 / self.fps


def _fourcc_to_str(code: float) -> Optional[str]:
    value = int(code)
    if value <= 0:
        return None
    return "".join(chr((value >> (8 * i)) & 0xFF) for i in range(4)).strip() or None


def info_from_capture(cap: cv2.VideoCapture) -> Optional[VideoInfo]:
    """Read VideoInfo from an opened capture; None if fps or length is unknown."""
    fps = cap.get(cv2.CAP_PROP_FPS)
    frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
    if not fps or fps <= 0 or frame_count <= 0:
        return None

    return VideoInfo(
        fps=float(fps),
        frame_count=frame_count,
        duration=frame_count / fps,
        width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
        height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        format=_fourcc_to_str(cap.get(cv2.CAP_PROP_FOURCC)),
    )


def probe_video_info(source: Union[str, Path]) -> Optional[VideoInfo]:
    """
    Extract metadata from a video file.

    Returns:
        VideoInfo, or None if the source cannot be opened or lacks fps/length.
    """
    cap = cv2.VideoCapture(str(source))
    if not cap.isOpened():
        logging.error(f"Error getting video info: cannot open {source}")
        return None

    try:
        info = info_from_capture(cap)
        if info is None:
            logging.error(f"Error getting video info: no fps/frame count for {source}")
        return info
    finally:
        cap.release()
