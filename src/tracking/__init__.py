"""
Tracking module.

Single-object Kalman tracking with gated nearest-center association.
"""

from .tracker import ObjectTracker, select_detection

__all__ = ["ObjectTracker", "select_detection"]
