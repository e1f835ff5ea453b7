"""
Per-frame tensor arena.

Every buffer produced while processing a frame (model input, raw outputs,
decoded arrays) is registered with the arena and released when the frame
step exits, whether it finished or raised.
"""

from __future__ import annotations

import logging
from typing import Any, List, TypeVar

T = TypeVar("T")


class TensorArena:
    """
    Scoped owner of per-frame buffers.

    Example:
        with TensorArena() as arena:
            prep = arena.track(preprocess(frame, 640, 640))
            boxes, scores = arena.track_all(model.execute(prep.tensor))
    """

    def __init__(self) -> None:
        self._buffers: List[Any] = []
        self.released = 0

    def track(self, buffer: T) -> T:
        """Register a buffer and return it unchanged."""
        self._buffers.append(buffer)
        return buffer

    def track_all(self, buffers):
        """Register every buffer of a tuple/list and return it unchanged."""
        for buffer in buffers:
            self.track(buffer)
        return buffers

    def __len__(self) -> int:
        return len(self._buffers)

    def release(self) -> None:
        """Release all tracked buffers, newest first."""
        while self._buffers:
            buffer = self._buffers.pop()
            for name in ("release", "dispose", "close"):
                method = getattr(buffer, name, None)
                if callable(method):
                    try:
                        method()
                    except Exception as e:
                        logging.warning(f"Failed to release buffer {type(buffer).__name__}: {e}")
                    break
            self.released += 1

    def __enter__(self) -> "TensorArena":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
