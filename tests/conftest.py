"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.frame import FrameData  # noqa: E402
from observation.base import ObservationConfig, SeekableSource  # noqa: E402
from observation.video_info import VideoInfo  # noqa: E402

# (x1, y1, x2, y2, score) in model pixels
RawBox = Tuple[float, float, float, float, float]


class FakeVideoSource(SeekableSource):
    """
    In-memory seekable source producing blank frames.

    Seeks complete on the event loop (no worker thread). With stall_after set,
    every seek request after that many is accepted but never completes.
    """

    blocking_seek = False

    def __init__(
        self,
        fps: float = 10.0,
        frame_count: int = 10,
        size: Tuple[int, int] = (200, 100),
        with_info: bool = True,
        stall_after: Optional[int] = None,
    ):
        super().__init__(ObservationConfig(source_id="fake"))
        self._fps = fps
        self._frame_count = frame_count
        self._size = size
        self._with_info = with_info
        self.stall_after = stall_after
        self.requested: List[float] = []

    def open(self) -> None:
        width, height = self._size
        if self._with_info:
            self._info = VideoInfo(
                fps=self._fps,
                frame_count=self._frame_count,
                duration=self._frame_count / self._fps,
                width=width,
                height=height,
            )
        self._is_open = True

    def close(self) -> None:
        self._is_open = False

    def set_position(self, t: float) -> None:
        self.requested.append(t)
        if self.stall_after is not None and len(self.requested) > self.stall_after:
            return
        super().set_position(t)

    def _seek(self, t: float) -> float:
        return t

    def read_frame(self) -> Optional[FrameData]:
        if not self._is_open:
            return None
        width, height = self._size
        return FrameData.from_numpy(
            np.zeros((height, width, 3), dtype=np.uint8),
            timestamp=self._current_position,
            frame_index=self._frame_index,
            source=self.source_id,
        )


class BrokenSeekSource(FakeVideoSource):
    """
    Fake source that seeks on a worker thread and fails past fail_after seconds.
    """

    blocking_seek = True

    def __init__(self, fail_after: float, **kwargs):
        super().__init__(**kwargs)
        self.fail_after = fail_after

    def _seek(self, t: float) -> float:
        if t > self.fail_after:
            raise RuntimeError(f"decoder error at {t:.2f}s")
        return t


class FakeModel:
    """
    Scripted detection model.

    script(call_index) returns the raw boxes for that call; the model input
    is ignored.
    """

    def __init__(
        self,
        script: Callable[[int], Sequence[RawBox]],
        input_size: Tuple[int, int] = (100, 100),
        box_width: int = 6,
    ):
        width, height = input_size
        self.input_shape = (1, height, width, 3)
        self.script = script
        self.box_width = box_width
        self.calls = 0
        self.inputs: List[Tuple[int, ...]] = []

    def execute(self, tensor: np.ndarray):
        self.inputs.append(tuple(tensor.shape))
        rows = list(self.script(self.calls))
        self.calls += 1

        boxes = np.zeros((1, len(rows), self.box_width), dtype=np.float32)
        scores = np.zeros((1, len(rows), 1), dtype=np.float32)
        for i, (x1, y1, x2, y2, score) in enumerate(rows):
            boxes[0, i, :4] = (x1, y1, x2, y2)
            boxes[0, i, 4:6] = (score, 1.0)[: self.box_width - 4]
            scores[0, i, 0] = score
        return boxes, scores


@pytest.fixture
def fake_source():
    """Opened 10 fps, 1 second, 200x100 fake source."""
    source = FakeVideoSource()
    source.open()
    yield source
    source.close()


@pytest.fixture
def moving_model():
    """One detection whose center moves +1 model px in x per call."""
    def script(i):
        return [(10 + i, 10, 30 + i, 30, 0.9)]
    return FakeModel(script)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
model:
  path: "models/detector.onnx"
  input_size: [640, 640]
  labels: ["object"]

video:
  path: "data/input.mp4"
  seek_timeout: 5.0

suppression:
  max_output_size: 500
  iou_threshold: 0.45
  score_threshold: 0.2

tracking:
  max_missed_frames: 10
  gating_distance: 100.0

processing:
  mode: "batch"
  frame_skip: 1

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "model": {
            "path": "models/detector.onnx",
            "input_size": [640, 640],
            "labels": ["object"],
        },
        "video": {
            "path": "data/input.mp4",
            "seek_timeout": 5.0,
            "settle_delay": 0.01,
        },
        "suppression": {
            "max_output_size": 500,
            "iou_threshold": 0.45,
            "score_threshold": 0.2,
        },
        "tracking": {
            "max_missed_frames": 10,
            "gating_distance": 100.0,
        },
        "processing": {
            "mode": "batch",
            "frame_skip": 1,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
