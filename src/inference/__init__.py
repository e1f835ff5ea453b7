"""
Inference stages: preprocessing, model backends, decode and suppression.
"""

from .arena import TensorArena
from .backend import DnnModelConfig, ModelBackend, OpenCVDnnModel, model_input_size
from .decode import decode
from .nms import iou, non_max_suppression, select_indices
from .preprocess import PreprocessedInput, preprocess, to_model_normalized, to_source_pixels

__all__ = [
    "TensorArena",
    "DnnModelConfig",
    "ModelBackend",
    "OpenCVDnnModel",
    "model_input_size",
    "decode",
    "iou",
    "non_max_suppression",
    "select_indices",
    "PreprocessedInput",
    "preprocess",
    "to_model_normalized",
    "to_source_pixels",
]
