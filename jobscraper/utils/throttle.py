from __future__ import annotations

import random
import threading
import time
from collections import defaultdict
from typing import Callable


class RateLimiter:
    """Per-domain request spacing with jitter, plus retry backoff.

    Timestamps survive for the lifetime of the limiter; only the request
    counters are cleared by ``reset_counts``.
    """

    def __init__(
        self,
        base_delay: float = 2.0,
        max_retries: int = 3,
        jitter: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._base_delay = base_delay
        self._max_retries = max_retries
        self._jitter = jitter
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._domain_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self.last_called: dict[str, float] = {}
        self._counts: dict[str, int] = defaultdict(int)

    def wait_for_slot(self, domain: str) -> float:
        with self._lock:
            domain_lock = self._domain_locks[domain]
        with domain_lock:
            with self._lock:
                last = self.last_called.get(domain)
                jitter = self._rng.uniform(0, self._jitter)
                base_delay = self._base_delay
            elapsed = float("inf") if last is None else self._clock() - last
            to_sleep = max(0.0, base_delay - elapsed + jitter)
            if to_sleep > 0:
                self._sleep(to_sleep)
            with self._lock:
                self.last_called[domain] = self._clock()
                self._counts[domain] += 1
        return to_sleep

    def backoff_delay(self, attempt: int) -> float:
        with self._lock:
            base_delay = self._base_delay
            jitter = self._rng.uniform(0, base_delay)
        return base_delay * (2**attempt) + jitter

    @property
    def base_delay(self) -> float:
        return self._base_delay

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def set_base_delay(self, delay: float) -> None:
        with self._lock:
            self._base_delay = max(0.0, delay)

    def set_max_retries(self, retries: int) -> None:
        with self._lock:
            self._max_retries = max(0, retries)

    def request_count(self, domain: str) -> int:
        with self._lock:
            return self._counts.get(domain, 0)

    def reset_counts(self) -> None:
        with self._lock:
            self._counts.clear()
