from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field


@dataclass
class AsyncRateLimiter:
    """Sliding-window limiter shared by all concurrent market requests.

    At most ``max_calls`` acquisitions are granted per ``period_seconds``;
    ``max_calls <= 0`` disables limiting.
    """

    max_calls: int
    period_seconds: float = 1.0

    _calls: deque[float] = field(default_factory=deque, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def acquire(self) -> None:
        if self.max_calls <= 0:
            return

        async with self._lock:
            self._evict(time.monotonic())

            if len(self._calls) >= self.max_calls:
                wait = self.period_seconds - (time.monotonic() - self._calls[0])
                if wait > 0:
                    await asyncio.sleep(wait)
                self._evict(time.monotonic())

            self._calls.append(time.monotonic())

    async def __aenter__(self) -> "AsyncRateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period_seconds:
            self._calls.popleft()
