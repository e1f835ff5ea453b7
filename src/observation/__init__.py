"""
Observation layer for seekable video sources.

The frame-advance driver only talks to SeekableSource; each backend decides
how to reach a position and decode the frame there.
"""

from .base import ObservationConfig, SeekableSource
from .opencv_source import OpenCVSourceConfig, OpenCVVideoSource
from .video_info import VideoInfo, probe_video_info

__all__ = [
    "ObservationConfig",
    "SeekableSource",
    "OpenCVSourceConfig",
    "OpenCVVideoSource",
    "VideoInfo",
    "probe_video_info",
]
