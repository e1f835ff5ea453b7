"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ModelConfig:
    """Detection model configuration."""
    path: str = ""
    input_size: Optional[List[int]] = None  # [width, height]; None = 640x640
    output_names: Optional[List[str]] = None
    pixel_coordinates: bool = True  # raw boxes are in model pixels, not [0, 1]
    labels: List[str] = field(default_factory=lambda: ["object"])
    warmup: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", ""),
            input_size=d.get("input_size"),
            output_names=d.get("output_names"),
            pixel_coordinates=d.get("pixel_coordinates", True),
            labels=d.get("labels") or ["object"],
            warmup=d.get("warmup", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "path": self.path,
            "pixel_coordinates": self.pixel_coordinates,
            "labels": self.labels,
            "warmup": self.warmup,
        }
        if self.input_size is not None:
            d["input_size"] = self.input_size
        if self.output_names is not None:
            d["output_names"] = self.output_names
        return d


@dataclass
class VideoConfig:
    """Video source configuration."""
    path: str = ""
    seek_timeout: float = 5.0
    settle_delay: float = 0.01

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VideoConfig":
        return cls(
            path=d.get("path", ""),
            seek_timeout=d.get("seek_timeout", 5.0),
            settle_delay=d.get("settle_delay", 0.01),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "seek_timeout": self.seek_timeout,
            "settle_delay": self.settle_delay,
        }


@dataclass
class SuppressionConfig:
    """Non-maximum suppression configuration."""
    max_output_size: int = 500
    iou_threshold: float = 0.45
    score_threshold: float = 0.2
    class_aware: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuppressionConfig":
        return cls(
            max_output_size=d.get("max_output_size", 500),
            iou_threshold=d.get("iou_threshold", 0.45),
            score_threshold=d.get("score_threshold", 0.2),
            class_aware=d.get("class_aware", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_output_size": self.max_output_size,
            "iou_threshold": self.iou_threshold,
            "score_threshold": self.score_threshold,
            "class_aware": self.class_aware,
        }


@dataclass
class TrackingConfig:
    """Single-object tracker configuration."""
    max_missed_frames: int = 10
    gating_distance: float = 100.0
    position_variance: float = 1.0
    velocity_variance: float = 1000.0
    process_noise: float = 1.0
    measurement_noise: float = 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            max_missed_frames=d.get("max_missed_frames", 10),
            gating_distance=d.get("gating_distance", 100.0),
            position_variance=d.get("position_variance", 1.0),
            velocity_variance=d.get("velocity_variance", 1000.0),
            process_noise=d.get("process_noise", 1.0),
            measurement_noise=d.get("measurement_noise", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_missed_frames": self.max_missed_frames,
            "gating_distance": self.gating_distance,
            "position_variance": self.position_variance,
            "velocity_variance": self.velocity_variance,
            "process_noise": self.process_noise,
            "measurement_noise": self.measurement_noise,
        }


@dataclass
class ProcessingConfig:
    """Frame-advance loop configuration."""
    mode: str = "batch"  # batch | realtime
    frame_skip: int = 1
    start: float = 0.0
    end: Optional[float] = None  # None = video duration
    stats_log_interval: float = 5.0
    draw_boxes: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProcessingConfig":
        return cls(
            mode=d.get("mode", "batch"),
            frame_skip=d.get("frame_skip", 1),
            start=d.get("start", 0.0),
            end=d.get("end"),
            stats_log_interval=d.get("stats_log_interval", 5.0),
            draw_boxes=d.get("draw_boxes", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "mode": self.mode,
            "frame_skip": self.frame_skip,
            "start": self.start,
            "stats_log_interval": self.stats_log_interval,
            "draw_boxes": self.draw_boxes,
        }
        if self.end is not None:
            d["end"] = self.end
        return d


@dataclass
class WebConfig:
    """Replay API configuration."""
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", False),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    suppression: SuppressionConfig = field(default_factory=SuppressionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/frame_tracker.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            model=ModelConfig.from_dict(d.get("model") or {}),
            video=VideoConfig.from_dict(d.get("video") or {}),
            suppression=SuppressionConfig.from_dict(d.get("suppression") or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking") or {}),
            processing=ProcessingConfig.from_dict(d.get("processing") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/frame_tracker.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging the effective config)."""
        return {
            "model": self.model.to_dict(),
            "video": self.video.to_dict(),
            "suppression": self.suppression.to_dict(),
            "tracking": self.tracking.to_dict(),
            "processing": self.processing.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
