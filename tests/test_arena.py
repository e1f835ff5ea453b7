"""
Tests for per-frame buffer scoping.
"""

import pytest

from inference.arena import TensorArena


class Buffer:
    def __init__(self, log, name, fail=False):
        self.log = log
        self.name = name
        self.fail = fail

    def release(self):
        if self.fail:
            raise RuntimeError("cannot release")
        self.log.append(self.name)


class TestTensorArena:
    def test_releases_newest_first(self):
        log = []
        with TensorArena() as arena:
            arena.track(Buffer(log, "input"))
            arena.track_all((Buffer(log, "boxes"), Buffer(log, "scores")))
            assert len(arena) == 3

        assert log == ["scores", "boxes", "input"]
        assert arena.released == 3
        assert len(arena) == 0

    def test_releases_on_error(self):
        log = []
        with pytest.raises(ValueError):
            with TensorArena() as arena:
                arena.track(Buffer(log, "input"))
                raise ValueError("decode failed")
        assert log == ["input"]

    def test_track_returns_buffer(self):
        arena = TensorArena()
        buf = Buffer([], "x")
        assert arena.track(buf) is buf

    def test_plain_arrays_are_dropped(self):
        arena = TensorArena()
        arena.track([1, 2, 3])
        arena.release()
        assert arena.released == 1

    def test_release_failure_is_logged(self):
        log = []
        arena = TensorArena()
        arena.track(Buffer(log, "a"))
        arena.track(Buffer(log, "b", fail=True))
        arena.release()
        assert log == ["a"]
        assert arena.released == 2
