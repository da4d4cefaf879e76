"""Process-wide daily call limits for the matching endpoint.

Matching fans out to paid remote models, so each admin gets a small daily
allowance and the whole process a global one. SuperAdmins are exempt.
Counters reset when the window rolls over, or explicitly via ``reset()``.
"""
from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import Callable

from talentnest.config import RateLimitConfig
from talentnest.log import get_logger

log = get_logger(__name__)


class RateLimitExceeded(Exception):
    def __init__(self, message: str, scope: str) -> None:
        super().__init__(message)
        self.message = message
        self.scope = scope


class DailyCallLimiter:
    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._per_user: dict[str, int] = defaultdict(int)
        self._total = 0
        self._window_start = clock()

    def reset(self) -> None:
        with self._lock:
            self._reset_locked()

    def _reset_locked(self) -> None:
        self._per_user.clear()
        self._total = 0
        self._window_start = self._clock()

    def _roll_window(self) -> None:
        if self._clock() - self._window_start >= self.config.window_seconds:
            log.info("Daily call window rolled over — %d calls counted", self._total)
            self._reset_locked()

    def acquire(self, user_key: str, *, exempt: bool = False) -> None:
        """Count one call for *user_key* or raise ``RateLimitExceeded``."""
        if exempt:
            return
        with self._lock:
            self._roll_window()
            if self._per_user[user_key] >= self.config.per_admin_daily:
                log.warning("Per-user match limit reached for %s", user_key)
                raise RateLimitExceeded("Daily limit reached. Try again tomorrow.", "user")
            if self._total >= self.config.global_daily:
                log.warning("Global match limit reached (%d)", self._total)
                raise RateLimitExceeded(
                    "Global usage limit for today reached. Try again tomorrow.", "global"
                )
            self._per_user[user_key] += 1
            self._total += 1

    def remaining(self, user_key: str) -> int:
        with self._lock:
            self._roll_window()
            return max(
                0,
                min(
                    self.config.per_admin_daily - self._per_user.get(user_key, 0),
                    self.config.global_daily - self._total,
                ),
            )
