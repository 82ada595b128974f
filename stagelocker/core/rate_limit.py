"""
Rate limiting configuration for the API
"""
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict
import time
import zlib

from slowapi import Limiter
from slowapi.util import get_remote_address

from stagelocker.core.config import get_settings


# Coarse per-IP limiter for signup/login, on top of the per-email windows below
limiter = Limiter(key_func=get_remote_address)

AUTH_RATE_LIMIT = get_settings().auth_rate_limit


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: float = 0.0


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """
    Fixed-window request counter keyed by a caller attribute (e.g. email).

    Check-and-increment for a key runs under that key's lock stripe, so two
    concurrent requests can never both pass the limit. Expired windows are
    swept lazily every ``sweep_interval`` seconds.
    """

    def __init__(
        self,
        *,
        sweep_interval: float = 60.0,
        stripes: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: Dict[str, _Window] = {}
        self._locks = [Lock() for _ in range(stripes)]
        self._sweep_lock = Lock()
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._next_sweep = clock() + sweep_interval

    def _lock_for(self, key: str) -> Lock:
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]

    def check_and_consume(self, key: str, limit: int, window_seconds: float) -> RateLimitDecision:
        now = self._clock()
        self._maybe_sweep(now)

        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is None or now > entry.reset_at:
                self._entries[key] = _Window(count=1, reset_at=now + window_seconds)
                return RateLimitDecision(allowed=True)
            if entry.count < limit:
                entry.count += 1
                return RateLimitDecision(allowed=True)
            return RateLimitDecision(allowed=False, retry_after=max(0.0, entry.reset_at - now))

    def _maybe_sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        # Only one thread sweeps; the rest keep serving
        if not self._sweep_lock.acquire(blocking=False):
            return
        try:
            self._next_sweep = now + self._sweep_interval
            self._sweep(now)
        finally:
            self._sweep_lock.release()

    def sweep(self) -> int:
        """Drop every window that has already ended. Returns how many were removed."""
        return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        removed = 0
        for key in list(self._entries):
            with self._lock_for(key):
                entry = self._entries.get(key)
                if entry is not None and now > entry.reset_at:
                    del self._entries[key]
                    removed += 1
        return removed

    def reset(self) -> None:
        for lock in self._locks:
            lock.acquire()
        try:
            self._entries.clear()
        finally:
            for lock in self._locks:
                lock.release()

    def __len__(self) -> int:
        return len(self._entries)
