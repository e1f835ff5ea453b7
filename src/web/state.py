import threading
import time

from timeline.cache import TimelineCache


class SharedState:
    """
    Singleton class to share state between the frame-advance driver
    and the replay web server.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance.cache = TimelineCache()
                    cls._instance.config = None
                    cls._instance.config_lock = threading.Lock()
                    cls._instance.config_path = None
                    cls._instance.stats_lock = threading.Lock()
                    cls._instance.run_stats = {}
                    cls._instance.reset_run_stats()
        return cls._instance

    def set_cache(self, cache):
        """Point the API at the cache the driver publishes into."""
        self.cache = cache

    def set_config(self, config, config_path):
        with self.config_lock:
            self.config = config
            self.config_path = config_path

    def get_labels(self):
        with self.config_lock:
            if self.config is None:
                return ["object"]
            return list(self.config.model.labels)

    def get_draw_boxes(self):
        with self.config_lock:
            if self.config is None:
                return True
            return bool(self.config.processing.draw_boxes)

    def reset_run_stats(self):
        with self.stats_lock:
            self.run_stats = {
                "running": False,
                "mode": None,
                "start": None,
                "end": None,
                "frames": 0,
                "fps": 0.0,
                "last_time": None,
                "outcome": None,
                "error": None,
                "start_time": time.time(),
            }

    def update_run_stats(self, stats):
        with self.stats_lock:
            self.run_stats.update(stats)

    def get_run_stats_copy(self):
        """Return a shallow copy of current run stats."""
        with self.stats_lock:
            return dict(self.run_stats)

# Global instance
state = SharedState()
