"""
Timeline of processed frames: the append-only cache and replay folding.
"""

from .cache import TimelineCache
from .replay import ReplayView, replay, replay_results

__all__ = ["TimelineCache", "ReplayView", "replay", "replay_results"]
