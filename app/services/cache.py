from __future__ import annotations

import time
from threading import Lock
from typing import Any, Callable, Dict, Tuple


class TTLCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._lock = Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            expires_at, value = item
            if expires_at < now:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        expires_at = self._clock() + ttl_seconds
        with self._lock:
            self._store[key] = (expires_at, value)
