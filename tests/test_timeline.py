"""
Tests for the timeline cache and replay.
"""

import pytest

from models.detection import Detection, FilteredDetection
from models.result import FrameResult
from models.track import TrackPoint, TrackStatus
from timeline.cache import TimelineCache
from timeline.replay import replay


def make_result(t, centers=(), track=None):
    detections = tuple(
        FilteredDetection(
            id=i,
            detection=Detection(box=(0.0, 0.0, 0.1, 0.1), score=0.8),
            center_x=x,
            center_y=y,
            pixel_box=(x - 2, y - 2, x + 2, y + 2),
        )
        for i, (x, y) in enumerate(centers)
    )
    return FrameResult(time=t, detections=detections, track_point=track)


@pytest.fixture
def cache():
    c = TimelineCache()
    c.extend([
        make_result(0.0, [(10, 10)]),
        make_result(0.5, [(12, 10), (50, 50)]),
        make_result(1.0, [(14, 10)]),
    ])
    return c


class TestTimelineCache:
    """Append-only storage and time lookups."""

    def test_at_or_before(self, cache):
        assert cache.at_or_before(0.7).time == 0.5
        assert cache.at_or_before(0.5).time == 0.5
        assert cache.at_or_before(10.0).time == 1.0

    def test_at_or_before_tolerance(self, cache):
        """Seek-reported times slightly under an entry still find it."""
        assert cache.at_or_before(0.5 - 1e-7).time == 0.5

    def test_at_or_before_earlier_than_everything(self, cache):
        assert cache.at_or_before(-0.1) is None

    def test_nearest(self, cache):
        assert cache.nearest(0.9).time == 1.0
        assert cache.nearest(0.6).time == 0.5
        assert cache.nearest(-5.0).time == 0.0
        assert cache.nearest(5.0).time == 1.0

    def test_nearest_tie_prefers_earlier(self, cache):
        assert cache.nearest(0.25).time == 0.0

    def test_empty_cache(self):
        cache = TimelineCache()
        assert len(cache) == 0
        assert cache.at_or_before(1.0) is None
        assert cache.nearest(1.0) is None
        assert cache.last_time is None
        assert cache.up_to(1.0) == []

    def test_append_out_of_order_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.append(make_result(0.2))
        assert len(cache) == 3

    def test_up_to(self, cache):
        assert [r.time for r in cache.up_to(0.5)] == [0.0, 0.5]

    def test_bounds(self, cache):
        assert cache.first_time == 0.0
        assert cache.last_time == 1.0
        assert cache[1].time == 0.5

    def test_snapshot_is_stable(self, cache):
        """A snapshot does not change when the writer appends."""
        snap = cache.snapshot()
        cache.append(make_result(1.5))
        assert len(snap) == 3
        assert len(cache) == 4

    def test_clear(self, cache):
        cache.clear()
        assert len(cache) == 0
        cache.append(make_result(0.0))
        assert len(cache) == 1


class TestReplay:
    """Cumulative trail and instantaneous boxes."""

    def test_trail_is_cumulative(self, cache):
        view = replay(cache, 0.7)
        assert len(view.trail) == 3
        assert view.frame_time == 0.5

    def test_boxes_from_latest_frame_only(self, cache):
        view = replay(cache, 0.7)
        assert [(m.x, m.y) for m in view.boxes] == [(12, 10), (50, 50)]
        assert all(m.box is not None for m in view.boxes)

    def test_boxes_disabled(self, cache):
        view = replay(cache, 0.7, draw_boxes=False)
        assert all(m.box is None for m in view.boxes)
        assert all(m.box is None for m in view.trail)

    def test_replay_is_idempotent(self, cache):
        assert replay(cache, 0.7) == replay(cache, 0.7)
        assert len(cache) == 3

    def test_before_first_frame(self, cache):
        view = replay(cache, -1.0)
        assert view.trail == ()
        assert view.boxes == ()
        assert view.frame_time is None

    def test_track_trail(self):
        cache = TimelineCache()
        cache.append(make_result(0.0, [(10, 10)], TrackPoint(10, 10, TrackStatus.TRACKING, (8, 8, 12, 12), 0)))
        cache.append(make_result(0.1, [], TrackPoint(11, 10, TrackStatus.COASTING, missed_frame_count=1)))

        view = replay(cache, 0.1)
        assert [(m.x, m.y) for m in view.track_trail] == [(10, 10), (11, 10)]
        assert view.boxes[-1].id == -1
        assert view.boxes[-1].score == 0.0
