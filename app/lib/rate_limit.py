"""
Fixed-window request counter keyed by client IP.

Backed by the `limits` library (the engine under Flask-Limiter) so the
counters can live in process memory (memory://) or be shared through Redis
(redis://host:port/db) without changing callers.
"""
import logging
import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


class RequestRateLimiter:
    """
    At most `max_requests` per key within a window of `window_seconds`.

    The first request for a key anchors its window; once the window expires
    the next request starts a new one with a count of 1.
    """

    namespace = 'request-gate'

    def __init__(self, max_requests=100, window_seconds=900, storage_uri='memory://'):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.storage_uri = storage_uri
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.storage = storage_from_string(storage_uri)
        self.strategy = FixedWindowRateLimiter(self.storage)

    @classmethod
    def from_config(cls, config):
        return cls(
            max_requests=config.get('REQUEST_RATE_LIMIT', 100),
            window_seconds=config.get('REQUEST_RATE_LIMIT_WINDOW', 900),
            storage_uri=config.get('REQUEST_RATE_LIMIT_STORAGE_URI', 'memory://'),
        )

    @property
    def is_shared(self):
        return not self.storage_uri.startswith('memory://')

    def check_and_consume(self, key: str) -> bool:
        """Count one request for `key`; False once the window is exhausted."""
        return self.strategy.hit(self.item, self.namespace, key)

    def remaining(self, key: str) -> int:
        return self.strategy.get_window_stats(self.item, self.namespace, key).remaining

    def retry_after(self, key: str) -> int:
        """Whole seconds until the current window for `key` resets (at least 1)."""
        reset_time = self.strategy.get_window_stats(self.item, self.namespace, key).reset_time
        return max(1, math.ceil(reset_time - time.time()))
