"""
SeekableSource interface for video sources the pipeline can frame-step.

The pipeline never reads frames sequentially: it requests a position with
set_position() and waits for the one-shot seek-completed notification before
reading the frame decoded at that position.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from models.frame import FrameData

from .video_info import VideoInfo

SeekListener = Callable[[Optional[BaseException]], None]


@dataclass
class ObservationConfig:
    """
    Base configuration for seekable sources.

    Attributes:
        source_id: Unique identifier for this source.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    metadata: Dict[str, Any] = field(default_factory=dict)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class SeekableSource(ABC):
    """
    Abstract base class for seekable video sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source and its VideoInfo
        3. Register on_seeked(callback), then call set_position(t)
        4. After the callback fires, read_frame() returns the frame at t
        5. Call close() to release resources

    Can also be used as a context manager.

    Subclasses implement _seek(); set blocking_seek = False when _seek() is
    cheap enough to run on the event loop itself.
    """

    blocking_seek = True

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._info: Optional[VideoInfo] = None
        self._current_position = 0.0
        self._frame_index = 0
        self._listener_lock = threading.Lock()
        self._seek_listener: Optional[SeekListener] = None

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def info(self) -> Optional[VideoInfo]:
        """Video metadata, None when the source could not provide it."""
        return self._info

    @property
    def fps(self) -> Optional[float]:
        return self._info.fps if self._info else None

    @property
    def duration(self) -> Optional[float]:
        return self._info.duration if self._info else None

    @property
    def current_position(self) -> float:
        """Seek-reported position in seconds (may differ slightly from the request)."""
        return self._current_position

    @abstractmethod
    def open(self) -> None:
        """
        Open the source and populate its VideoInfo.

        Raises:
            RuntimeError: If the source cannot be opened.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""

    @abstractmethod
    def _seek(self, t: float) -> float:
        """
        Move to time t and decode the frame there.

        Returns:
            The position actually reached, in seconds.
        """

    @abstractmethod
    def read_frame(self) -> Optional[FrameData]:
        """Return the frame decoded at the current position, or None."""

    def on_seeked(self, callback: Optional[SeekListener]) -> None:
        """
        Register a one-shot seek-completed callback (None clears it).

        The callback receives None on success or the exception raised by the
        seek, and may fire on a worker thread.
        """
        with self._listener_lock:
            self._seek_listener = callback

    def set_position(self, t: float) -> None:
        """Request a seek to t; completion is signalled through on_seeked()."""
        target = max(0.0, t)
        if self.duration is not None:
            target = min(target, self.duration)

        loop = _running_loop()
        if loop is None:
            self._apply_seek(target)
        elif self.blocking_seek:
            future = loop.run_in_executor(None, self._apply_seek, target)
            future.add_done_callback(self._log_seek_failure)
        else:
            loop.call_soon(self._apply_seek, target)

    def _apply_seek(self, target: float) -> None:
        try:
            position = self._seek(target)
        except Exception as e:
            # Nobody waiting: let the caller (or the executor future) see it.
            if not self._notify_seeked(e):
                raise
            logging.error(f"Seek failed on {self.source_id}: {e}")
            return
        self._current_position = position
        self._frame_index += 1
        self._notify_seeked(None)

    def _notify_seeked(self, error: Optional[BaseException]) -> bool:
        with self._listener_lock:
            callback, self._seek_listener = self._seek_listener, None
        if callback is None:
            return False
        callback(error)
        return True

    def _log_seek_failure(self, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logging.error(f"Seek failed on {self.source_id}: {error}")

    def __enter__(self) -> "SeekableSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
