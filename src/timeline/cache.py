"""
Time-keyed, append-only cache of per-frame results.

The driver is the single writer. Readers (replay, the web API thread) get
immutable snapshots, so they never observe an append in progress. Lookups
are nearest-match with a small tolerance because seek-reported times are
not exact.
"""

from __future__ import annotations

import bisect
import threading
from typing import Iterable, List, Optional, Tuple

from models.result import FrameResult

DEFAULT_TOLERANCE = 1e-6


class TimelineCache:
    """
    Append-only sequence of FrameResult ordered by time.

    Example:
        cache = TimelineCache()
        cache.append(FrameResult(time=0.0))
        cache.append(FrameResult(time=0.5))
        cache.at_or_before(0.7).time  # 0.5
    """

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        self.tolerance = tolerance
        self._lock = threading.Lock()
        self._results: Tuple[FrameResult, ...] = ()
        self._times: Tuple[float, ...] = ()

    def append(self, result: FrameResult) -> None:
        """
        Append a result in playback order.

        Raises:
            ValueError: If result.time is earlier than the last recorded time.
        """
        with self._lock:
            if self._times and result.time < self._times[-1] - self.tolerance:
                raise ValueError(
                    f"Timeline is append-only in playback order: "
                    f"t={result.time:.6f} < last t={self._times[-1]:.6f}"
                )
            self._results = self._results + (result,)
            self._times = self._times + (result.time,)

    def extend(self, results: Iterable[FrameResult]) -> None:
        for result in results:
            self.append(result)

    def clear(self) -> None:
        """Start a new session."""
        with self._lock:
            self._results = ()
            self._times = ()

    def snapshot(self) -> Tuple[FrameResult, ...]:
        """Immutable view of everything appended so far."""
        return self._results

    def _snapshot_with_times(self) -> Tuple[Tuple[FrameResult, ...], Tuple[float, ...]]:
        with self._lock:
            return self._results, self._times

    def __len__(self) -> int:
        return len(self._results)

    def __getitem__(self, index: int) -> FrameResult:
        return self._results[index]

    @property
    def last_time(self) -> Optional[float]:
        times = self._times
        return times[-1] if times else None

    @property
    def first_time(self) -> Optional[float]:
        times = self._times
        return times[0] if times else None

    def at_or_before(self, t: float) -> Optional[FrameResult]:
        """
        Latest entry whose time does not exceed t.

        Returns None when every entry is later than t (or the cache is empty).
        """
        results, times = self._snapshot_with_times()
        idx = bisect.bisect_right(times, t + self.tolerance)
        if idx == 0:
            return None
        return results[idx - 1]

    def nearest(self, t: float) -> Optional[FrameResult]:
        """Entry closest to t in either direction; ties go to the earlier entry."""
        results, times = self._snapshot_with_times()
        if not times:
            return None

        idx = bisect.bisect_left(times, t)
        if idx == 0:
            return results[0]
        if idx == len(times):
            return results[-1]

        before, after = times[idx - 1], times[idx]
        if (after - t) < (t - before):
            return results[idx]
        return results[idx - 1]

    def up_to(self, t: float) -> List[FrameResult]:
        """All entries with time <= t, in playback order."""
        results, times = self._snapshot_with_times()
        idx = bisect.bisect_right(times, t + self.tolerance)
        return list(results[:idx])
