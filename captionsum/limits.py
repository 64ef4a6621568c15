from __future__ import annotations
import logging
import threading
from collections import deque
from contextlib import contextmanager
from typing import Any, Deque, Dict, Iterator, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)


class SummaryCache:
    """Successful summary responses keyed by video id; size 0 disables it."""

    def __init__(self, maxsize: int = 256, ttl: float = 3600.0):
        self._cache: Optional[TTLCache] = TTLCache(maxsize=maxsize, ttl=ttl) if maxsize > 0 else None
        self._lock = threading.Lock()

    def get(self, video_id: str) -> Optional[Dict[str, Any]]:
        if self._cache is None:
            return None
        with self._lock:
            return self._cache.get(video_id)

    def put(self, video_id: str, response: Dict[str, Any]) -> None:
        if self._cache is None:
            return
        with self._lock:
            self._cache[video_id] = response

    def __len__(self) -> int:
        if self._cache is None:
            return 0
        with self._lock:
            return len(self._cache)


class CaptionGate:
    """
    At most ``limit`` holders at a time; waiters are admitted in arrival order.
    A released slot is handed straight to the oldest waiter.
    """

    def __init__(self, limit: int = 4):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self._active = 0
        self._waiters: Deque[threading.Event] = deque()
        self._lock = threading.Lock()

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    def acquire(self) -> None:
        with self._lock:
            if self._active < self.limit and not self._waiters:
                self._active += 1
                return
            turn = threading.Event()
            self._waiters.append(turn)
            logger.info("Caption queue: %d waiting", len(self._waiters))
        turn.wait()

    def release(self) -> None:
        with self._lock:
            if self._waiters:
                self._waiters.popleft().set()
            else:
                self._active -= 1

    @contextmanager
    def slot(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()
