"""
Clock and deadline helpers for time-boxed extraction work.

All waiting in the pipeline goes through a ``Clock`` so tests can swap in a
clock that records sleeps instead of performing them.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from ..logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SystemClock:
    """Monotonic wall clock backed by ``time`` and ``asyncio``."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))


@dataclass(slots=True)
class Deadline:
    """A point in time after which work should stop."""

    clock: SystemClock
    expires_at: float

    @classmethod
    def after(cls, seconds: float, clock: Optional[SystemClock] = None) -> Deadline:
        clock = clock or SystemClock()
        return cls(clock=clock, expires_at=clock.monotonic() + seconds)

    def remaining(self) -> float:
        return max(self.expires_at - self.clock.monotonic(), 0.0)

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cap(self, seconds: float) -> float:
        """Limit a timeout so it never outlives this deadline."""
        return min(seconds, self.remaining())


async def run_with_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    default: T,
    label: str = "task",
) -> T:
    """
    Await ``awaitable`` for at most ``timeout`` seconds.

    On timeout the underlying task is cancelled (releasing sockets, pages and
    other resources held in its ``finally`` blocks) and ``default`` is
    returned.
    """
    started = time.monotonic()
    try:
        return await asyncio.wait_for(awaitable, timeout=max(timeout, 0.0))
    except asyncio.TimeoutError:
        logger.warning("TIMEOUT %s abandoned after %.2fs", label, time.monotonic() - started)
        return default
