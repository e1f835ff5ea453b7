"""
Pipeline module for the frame tracker.

The pipeline steps a seekable video frame by frame:
- Seek and frame acquisition from the observation source
- Preprocessing, inference, decoding and suppression
- Optional single-object tracking
- Publishing results to the timeline cache
"""

from .engine import FrameAdvanceDriver, PipelineConfig, create_driver_from_config

__all__ = [
    "FrameAdvanceDriver",
    "PipelineConfig",
    "create_driver_from_config",
]
