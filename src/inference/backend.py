"""
Model backend interface.

The detection model is a black box: it takes a (1, H, W, 3) float tensor and
returns a raw box tensor (1, N, 6) and a score tensor (1, N, 1). Backends
may be synchronous or return an awaitable; the pipeline awaits either.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from models.config import ModelConfig
from models.errors import ShapeMismatch


class ModelBackend(Protocol):
    input_shape: Tuple[int, int, int, int]

    def execute(self, tensor: np.ndarray):
        ...


def model_input_size(backend: ModelBackend) -> Tuple[int, int]:
    """Return the backend's (width, height) from its (1, H, W, 3) input shape."""
    _, height, width, _ = backend.input_shape
    return int(width), int(height)


@dataclass(frozen=True)
class DnnModelConfig:
    path: str
    input_size: Tuple[int, int] = (640, 640)  # (width, height)
    output_names: Optional[Sequence[str]] = None
    warmup: bool = True

    @classmethod
    def from_config(cls, cfg: ModelConfig) -> "DnnModelConfig":
        """Adapter: build from the model section; a missing input_size keeps 640x640."""
        kwargs = {}
        if cfg.input_size:
            kwargs["input_size"] = tuple(cfg.input_size)
        return cls(
            path=cfg.path,
            output_names=cfg.output_names,
            warmup=cfg.warmup,
            **kwargs,
        )


class OpenCVDnnModel(ModelBackend):
    """
    Runs an exported detection graph (ONNX) through OpenCV's dnn module.

    The exported graph is expected to take NHWC input and expose two outputs:
    boxes and scores. Output order follows ``output_names`` when given.
    """

    def __init__(self, cfg: DnnModelConfig):
        self.cfg = cfg
        width, height = cfg.input_size
        self.input_shape = (1, int(height), int(width), 3)

        try:
            self._net = cv2.dnn.readNet(cfg.path)
        except cv2.error as e:
            raise RuntimeError(f"Failed to load model from {cfg.path}: {e}") from e

        self._output_names: List[str] = (
            list(cfg.output_names)
            if cfg.output_names
            else list(self._net.getUnconnectedOutLayersNames())
        )
        logging.info(
            f"Model loaded: path={cfg.path}, input_shape={self.input_shape}, "
            f"outputs={self._output_names}"
        )

        if cfg.warmup:
            self._warmup()

    def _warmup(self) -> None:
        dummy = np.ones(self.input_shape, dtype=np.float32)
        self.execute(dummy)
        logging.info("Model warmup complete")

    def execute(self, tensor: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        self._net.setInput(tensor)
        outputs = self._net.forward(self._output_names)
        if len(outputs) != 2:
            raise ShapeMismatch(f"Expected 2 model outputs (boxes, scores), got {len(outputs)}")
        boxes, scores = outputs
        return np.asarray(boxes), np.asarray(scores)
