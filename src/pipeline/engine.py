"""
Frame-advance driver for the detection/tracking pipeline.

The driver steps a seekable video through [start, end] at a fixed stride of
frame_skip frames. For every position it preprocesses the frame, awaits the
model, decodes and suppresses the raw output, optionally steps the object
tracker, and records a FrameResult. It then requests the next position and
suspends until the source signals seek completion.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from inference.arena import TensorArena
from inference.backend import ModelBackend, model_input_size
from inference.decode import decode
from inference.nms import non_max_suppression
from inference.preprocess import preprocess
from models.config import Config, TrackingConfig
from models.detection import locate_detections
from models.errors import (
    FrameTrackerError,
    InvalidAssociationState,
    NoVideoInfoAvailable,
    SeekFailed,
    SeekTimeout,
    ShapeMismatch,
)
from models.frame import FrameData
from models.result import FrameResult, RunOutcome, RunResult
from models.track import TrackSeed
from observation.base import SeekableSource
from timeline.cache import TimelineCache
from tracking.tracker import ObjectTracker

MODES = ("batch", "realtime")

# Positions closer than this are the same frame time.
TIME_EPSILON = 1e-6

FrameCallback = Callable[[FrameData, FrameResult], None]
StatsListener = Callable[[RunResult], None]


@dataclass
class PipelineConfig:
    """
    Configuration for the frame-advance driver.

    Attributes:
        mode: "batch" publishes results to the cache when the run ends;
            "realtime" publishes each frame immediately and fires callbacks.
        frame_skip: Frames advanced per step.
        seek_timeout: Seconds to wait for seek completion.
        settle_delay: Seconds to wait after each seek completion.
        stats_log_interval: Seconds between progress log messages.
        max_output_size: Suppression cap per frame.
        iou_threshold: Suppression overlap threshold.
        score_threshold: Minimum detection score.
        class_aware: Suppress overlaps only within a class.
        pixel_coordinates: Raw model boxes are in model pixels.
        tracking: Object tracker settings.
    """
    mode: str = "batch"
    frame_skip: int = 1
    seek_timeout: float = 5.0
    settle_delay: float = 0.01
    stats_log_interval: float = 5.0
    max_output_size: int = 500
    iou_threshold: float = 0.45
    score_threshold: float = 0.2
    class_aware: bool = False
    pixel_coordinates: bool = True
    tracking: TrackingConfig = field(default_factory=TrackingConfig)

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of: {', '.join(MODES)}")
        if self.frame_skip < 1:
            raise ValueError("frame_skip must be a positive integer")

    @classmethod
    def from_config(cls, cfg: Config) -> "PipelineConfig":
        """Adapter: build from the application Config."""
        return cls(
            mode=cfg.processing.mode,
            frame_skip=cfg.processing.frame_skip,
            seek_timeout=cfg.video.seek_timeout,
            settle_delay=cfg.video.settle_delay,
            stats_log_interval=cfg.processing.stats_log_interval,
            max_output_size=cfg.suppression.max_output_size,
            iou_threshold=cfg.suppression.iou_threshold,
            score_threshold=cfg.suppression.score_threshold,
            class_aware=cfg.suppression.class_aware,
            pixel_coordinates=cfg.model.pixel_coordinates,
            tracking=cfg.tracking,
        )


class FrameAdvanceDriver:
    """
    Sequential, seek-driven processing loop.

    Only one frame is ever in flight: each step depends on the previous
    frame's tracker state and seek position.

    Example:
        driver = FrameAdvanceDriver(source, model, cache, PipelineConfig(mode="realtime"))
        driver.add_callback(show_overlay)
        result = asyncio.run(driver.run(start=0.0, end=10.0))
    """

    def __init__(
        self,
        source: SeekableSource,
        model: ModelBackend,
        cache: TimelineCache,
        config: PipelineConfig,
    ):
        self.source = source
        self.model = model
        self.cache = cache
        self.config = config
        self.tracker: Optional[ObjectTracker] = None
        self._callbacks: List[FrameCallback] = []
        self._stats_listeners: List[StatsListener] = []
        self._running = False
        self._stop_requested = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._seek_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Add a callback fired after each frame in realtime mode.

        Args:
            callback: Function taking (frame_data, frame_result).
        """
        self._callbacks.append(callback)

    def add_stats_listener(self, listener: StatsListener) -> None:
        """
        Add a listener fired after each frame in both modes.

        It receives the in-progress RunResult (stats and last_time are current).
        """
        self._stats_listeners.append(listener)

    def stop(self) -> None:
        """
        Ask the loop to stop before its next frame.

        Safe to call from any thread; a pending seek wait is released.
        """
        self._stop_requested = True
        event, loop = self._seek_event, self._loop
        if event is not None and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(event.set)

    def _check_video_info(self) -> None:
        fps, duration = self.source.fps, self.source.duration
        if not fps or fps <= 0 or duration is None or duration <= 0:
            raise NoVideoInfoAvailable(
                f"Video info not available for {self.source.source_id} "
                f"(fps={fps}, duration={duration})"
            )

    async def _seek(self, target: float, last_time: Optional[float]) -> None:
        """Request a seek and suspend until the source reports completion."""
        loop = asyncio.get_running_loop()
        event = asyncio.Event()
        failures: List[BaseException] = []
        # stop() sets this event; a stop requested earlier skips the seek.
        self._seek_event = event
        if self._stop_requested:
            self._seek_event = None
            return

        def seeked(error: Optional[BaseException]) -> None:
            if error is not None:
                failures.append(error)
            loop.call_soon_threadsafe(event.set)

        self.source.on_seeked(seeked)
        try:
            self.source.set_position(target)
            await asyncio.wait_for(event.wait(), timeout=self.config.seek_timeout)
        except asyncio.TimeoutError:
            self.source.on_seeked(None)
            raise SeekTimeout(
                f"Seek to {target:.3f}s did not complete within {self.config.seek_timeout}s",
                time=target,
                last_processed_time=last_time,
            )
        finally:
            self._seek_event = None

        if failures:
            raise SeekFailed(
                f"Seek to {target:.3f}s failed: {failures[0]}",
                time=target,
                last_processed_time=last_time,
            ) from failures[0]

    async def _infer(self, tensor):
        if inspect.iscoroutinefunction(self.model.execute):
            outputs = await self.model.execute(tensor)
        else:
            loop = asyncio.get_running_loop()
            outputs = await loop.run_in_executor(None, self.model.execute, tensor)
        if not isinstance(outputs, (tuple, list)) or len(outputs) != 2:
            raise ShapeMismatch("Model must return exactly two tensors (boxes, scores)")
        return outputs

    async def process_frame(
        self,
        frame: FrameData,
        t: float,
        tracker: Optional[ObjectTracker] = None,
    ) -> FrameResult:
        """
        Run one frame through preprocess, model, decode, suppression and tracking.

        Every per-frame buffer is released when this returns or raises.
        """
        cfg = self.config
        width, height = model_input_size(self.model)

        with TensorArena() as arena:
            prep = arena.track(preprocess(frame.frame, width, height))
            boxes_tensor, scores_tensor = arena.track_all(await self._infer(prep.tensor))
            batch = decode(
                boxes_tensor,
                scores_tensor,
                input_size=(width, height) if cfg.pixel_coordinates else None,
            )
            kept = non_max_suppression(
                batch,
                max_output_size=cfg.max_output_size,
                iou_threshold=cfg.iou_threshold,
                score_threshold=cfg.score_threshold,
                class_aware=cfg.class_aware,
            )
            detections = tuple(locate_detections(kept, prep.ratios, frame.size))
            ratios = prep.ratios

        track_point = tracker.step(detections, t) if tracker is not None else None
        return FrameResult(time=t, detections=detections, ratios=ratios, track_point=track_point)

    async def detect_at(self, t: float) -> FrameResult:
        """Process the single frame at t without tracking or caching."""
        self._check_video_info()
        self._stop_requested = False
        await self._seek(t, last_time=None)
        frame = self.source.read_frame()
        if frame is None:
            raise FrameTrackerError("No frame available after seek", time=t)
        position = self.source.current_position
        try:
            return await self.process_frame(frame, position)
        except FrameTrackerError as e:
            raise e.at(position)

    def _fire_callbacks(self, frame: FrameData, result: FrameResult) -> None:
        for callback in self._callbacks:
            try:
                callback(frame, result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

    def _publish_stats(self, result: RunResult) -> None:
        for listener in self._stats_listeners:
            try:
                listener(result)
            except Exception as e:
                logging.warning(f"Stats listener error: {e}")

    def _log_progress(self, result: RunResult, start: float, end: float) -> None:
        stats = result.stats
        span = end - start
        progress = ((result.last_time or start) - start) / span * 100 if span > 0 else 100.0
        logging.info(
            f"Processing: {progress:.2f}% frames={stats.frame_count} "
            f"detections={stats.detection_count} elapsed={stats.elapsed:.1f}s "
            f"throughput={stats.fps:.2f} fps"
        )

    async def run(
        self,
        start: float = 0.0,
        end: Optional[float] = None,
        seed: Optional[TrackSeed] = None,
        track: bool = False,
        resume: bool = False,
    ) -> RunResult:
        """
        Process [start, end) of the video.

        Args:
            start: First position in seconds.
            end: Stop position in seconds (None = video duration).
            seed: Selected detection to track.
            track: Run the object tracker; requires a seed.
            resume: Continue after the last time already in the cache.

        Returns:
            RunResult with the gathered FrameResults and how the run ended.

        Raises:
            NoVideoInfoAvailable: fps/duration missing; nothing is processed.
            InvalidAssociationState: track=True without a seed.
            ShapeMismatch: Model output had the wrong layout (t attached).
            SeekTimeout: The source never completed a seek.
            SeekFailed: The source reported an error while seeking.
        """
        self._check_video_info()
        if track and seed is None:
            raise InvalidAssociationState("Tracking requested without a selected object")
        if self._running:
            raise RuntimeError("Driver is already running")

        cfg = self.config
        duration = float(self.source.duration)
        end = duration if end is None else min(end, duration)
        step = cfg.frame_skip / float(self.source.fps)

        if resume and self.cache.last_time is not None:
            start = max(start, self.cache.last_time + step)

        self.tracker = ObjectTracker.from_config(seed, cfg.tracking) if track else None
        result = RunResult()
        if start >= end - TIME_EPSILON:
            logging.info(f"Nothing to process: start={start:.3f} end={end:.3f}")
            return result

        realtime = cfg.mode == "realtime"
        self._running = True
        self._stop_requested = False
        self._loop = asyncio.get_running_loop()

        started = time.monotonic()
        last_log = started
        steps = 0
        target = start
        logging.info(
            f"Pipeline started: source={self.source.source_id} mode={cfg.mode} "
            f"range=[{start:.3f}, {end:.3f}) step={step:.4f}s track={track}"
        )

        try:
            await self._seek(target, last_time=None)
            while target < end - TIME_EPSILON:
                if self._stop_requested:
                    result.outcome = RunOutcome.STOPPED
                    break

                frame = self.source.read_frame()
                t = self.source.current_position
                if frame is None:
                    raise FrameTrackerError("No frame available after seek", time=t)

                try:
                    frame_result = await self.process_frame(frame, t, self.tracker)
                except FrameTrackerError as e:
                    raise e.at(t)

                result.results.append(frame_result)
                result.last_time = t
                result.stats.frame_count += 1
                result.stats.detection_count += len(frame_result.detections)
                result.stats.elapsed = time.monotonic() - started
                self._publish_stats(result)

                if realtime:
                    self.cache.append(frame_result)
                    self._fire_callbacks(frame, frame_result)
                    if time.monotonic() - last_log >= cfg.stats_log_interval:
                        self._log_progress(result, start, end)
                        last_log = time.monotonic()

                if self.tracker is not None and self.tracker.is_lost:
                    result.outcome = RunOutcome.TRACK_LOST
                    break

                # Step from start by index so float error does not accumulate.
                steps += 1
                target = min(start + steps * step, end)
                if target >= end - TIME_EPSILON:
                    break
                await self._seek(target, last_time=t)
                await asyncio.sleep(cfg.settle_delay)
        finally:
            self._running = False
            self._seek_event = None
            self.source.on_seeked(None)
            result.stats.elapsed = time.monotonic() - started

        if not realtime:
            self.cache.extend(result.results)

        self._log_progress(result, start, end)
        logging.info(f"Pipeline stopped: outcome={result.outcome.value} last_t={result.last_time}")
        return result


def create_driver_from_config(
    config: Config,
    source: SeekableSource,
    model: ModelBackend,
    cache: Optional[TimelineCache] = None,
    callbacks: Sequence[FrameCallback] = (),
) -> FrameAdvanceDriver:
    """
    Factory function to create a FrameAdvanceDriver from the application Config.

    Args:
        config: Typed application config.
        source: Opened seekable video source.
        model: Detection model backend.
        cache: Timeline cache to publish into (a new one if None).
        callbacks: Per-frame callbacks for realtime mode.
    """
    driver = FrameAdvanceDriver(
        source,
        model,
        cache if cache is not None else TimelineCache(),
        PipelineConfig.from_config(config),
    )
    for callback in callbacks:
        driver.add_callback(callback)
    return driver
