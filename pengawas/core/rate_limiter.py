"""
Fixed-window attempt counter used to throttle logins.

One RateLimiter lives on ``app.state.rate_limiter``; windows that have ended
are evicted on every check so the table only holds currently active keys.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request


class RateLimiter:
    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (attempts in window, window end)
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one attempt for ``key``; False once ``limit`` is exceeded in the window."""
        if limit <= 0:
            return True
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, ends_at) in self._windows.items() if ends_at <= now]
            for k in expired:
                del self._windows[k]
            attempts, ends_at = self._windows.get(key, (0, now + window_seconds))
            attempts += 1
            self._windows[key] = (attempts, ends_at)
            return attempts <= limit


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client and request.client.host else "unknown"


def enforce_limit(limiter: RateLimiter, request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    if not limiter.allow(f"{scope}:{client_ip(request)}", limit, window_seconds):
        raise HTTPException(429, "Terlalu banyak percobaan. Coba lagi sebentar.")
