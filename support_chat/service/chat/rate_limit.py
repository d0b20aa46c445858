import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

from redis import Redis

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Per-sender sliding-window counter.

    At most ``limit`` sends are admitted in any trailing ``window`` seconds.
    Rejected attempts are not recorded.
    """

    def __init__(self, limit: int = 20, window: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
                self._windows[key] = deque()
            return lock

    def admit(self, sender_id) -> bool:
        key = str(sender_id)
        with self._lock_for(key):
            timestamps = self._windows[key]
            now = self._clock()
            while timestamps and timestamps[0] <= now - self.window:
                timestamps.popleft()
            if len(timestamps) >= self.limit:
                return False
            timestamps.append(now)
            return True

    def evict_idle(self) -> int:
        """Drop senders with nothing left inside the window. Returns the number evicted."""
        now = self._clock()
        evicted = 0
        with self._guard:
            for key in list(self._windows):
                lock = self._locks[key]
                if not lock.acquire(blocking=False):
                    continue
                try:
                    timestamps = self._windows[key]
                    if not timestamps or timestamps[-1] <= now - self.window:
                        del self._windows[key]
                        del self._locks[key]
                        evicted += 1
                finally:
                    lock.release()
        return evicted

    def __len__(self) -> int:
        return len(self._windows)


class RedisFixedWindowRateLimiter:
    """Coarse per-sender limiter for the admin HTTP message route.

    Counts sends per fixed ``window`` bucket in redis so the quota survives
    restarts of the web process.
    """

    def __init__(self, redis: Redis, limit: int, window: int, prefix: str = "chat:ratelimit:admin"):
        self.redis = redis
        self.limit = limit
        self.window = window
        self.prefix = prefix

    def _key(self, sender_id, now: float) -> str:
        bucket = int(now // self.window)
        return f"{self.prefix}:{sender_id}:{bucket}"

    def admit(self, sender_id) -> bool:
        key = self._key(sender_id, time.time())
        count = self.redis.incr(key)
        if count == 1:
            self.redis.expire(key, self.window)
        if count > self.limit:
            logger.warning("admin http rate limit exceeded sender=%s count=%s", sender_id, count)
            return False
        return True
