from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class MarkerModel(BaseModel):
    id: int = Field(..., description="Detection id within its frame (-1 = tracked object)")
    x: float
    y: float
    class_name: str
    score: float
    color: str
    box: Optional[List[float]] = Field(None, description="[x1, y1, x2, y2] in source pixels")


class TrackPointModel(BaseModel):
    x: float
    y: float
    status: str = Field(..., description="tracking|coasting|lost")
    box: Optional[List[float]] = None
    detection_id: Optional[int] = None
    missed_frame_count: int = 0


class FrameResponse(BaseModel):
    time: float
    ratios: List[float]
    markers: List[MarkerModel]
    track_point: Optional[TrackPointModel] = None


class ReplayResponse(BaseModel):
    """
    Replay view at one playback time.
    The trail is cumulative; boxes only describe the latest frame at or before t.
    """
    time: float
    frame_time: Optional[float] = Field(None, description="Time of the frame supplying the boxes")
    trail: List[MarkerModel]
    track_trail: List[MarkerModel]
    boxes: List[MarkerModel]


class TimelineSummary(BaseModel):
    count: int
    first_time: Optional[float] = None
    last_time: Optional[float] = None
    tracked_frames: int = 0


class StatusResponse(BaseModel):
    running: bool = Field(..., description="True while the driver is processing")
    mode: Optional[str] = Field(None, description="batch|realtime")
    start: Optional[float] = None
    end: Optional[float] = None
    frames: int = 0
    fps: float = 0.0
    progress_pct: Optional[float] = Field(None, description="Processed share of [start, end]")
    outcome: Optional[str] = Field(None, description="completed|track_lost|stopped")
    error: Optional[str] = None
    timeline: TimelineSummary
    uptime_seconds: int
