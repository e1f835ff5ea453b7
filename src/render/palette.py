"""
Fixed color palette and class label lookup.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

# ultralytics color palette
PALETTE: Tuple[str, ...] = (
    "#FF3838",
    "#FF9D97",
    "#FF701F",
    "#FFB21D",
    "#CFD231",
    "#48F90A",
    "#92CC17",
    "#3DDB86",
    "#1A9334",
    "#00D4BB",
    "#2C99A8",
    "#00C2FF",
    "#344593",
    "#6473FF",
    "#0018EC",
    "#8438FF",
    "#520085",
    "#CB38FF",
    "#FF95C8",
    "#FF37C7",
)

DEFAULT_LABELS: Tuple[str, ...] = ("object",)

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def color_for(class_index: int) -> str:
    return PALETTE[int(class_index) % len(PALETTE)]


def label_for(class_index: int, labels: Sequence[str] = DEFAULT_LABELS) -> str:
    """Class name for an index; falls back to the index itself."""
    if 0 <= class_index < len(labels):
        return labels[class_index]
    return str(class_index)


def hex_to_bgr(hex_color: str) -> Optional[Tuple[int, int, int]]:
    """Convert '#RRGGBB' to an OpenCV BGR tuple."""
    match = _HEX_RE.match(hex_color)
    if match is None:
        return None
    r, g, b = (int(part, 16) for part in match.groups())
    return (b, g, r)
