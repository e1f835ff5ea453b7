"""
Rendering: marker emission, palette lookup and OpenCV overlays.
"""

from .markers import render_markers, track_marker
from .overlay import draw_overlay
from .palette import PALETTE, color_for, hex_to_bgr, label_for

__all__ = [
    "render_markers",
    "track_marker",
    "draw_overlay",
    "PALETTE",
    "color_for",
    "hex_to_bgr",
    "label_for",
]
