# src/prom_traffic_demo/handlers.py
"""Fixed-behavior endpoints. Each returns a body (implicit 200) or a Response."""
import asyncio
import random
import threading
import time
from typing import Awaitable, Callable, Optional

from fastapi.responses import Response

STABLE_BODY = "Endpoint estável"
FAST_RANDOM_BODY = "Endpoint com resposta aleatória (0-0.5s)"
SLOW_RANDOM_BODY = "Endpoint com resposta aleatória (0-2s)"

FAST_RANDOM_MAX_MS = 500
SLOW_RANDOM_MAX_MS = 2000


class DelaySource:
    """Process-wide random source for artificial delays, seeded once."""

    def __init__(self, seed: Optional[int] = None):
        self._lock = threading.Lock()
        self._rng = random.Random(time.time_ns() if seed is None else seed)

    def delay_ms(self, upper_ms: int) -> int:
        """Uniform integer milliseconds in [0, upper_ms)."""
        with self._lock:
            return self._rng.randrange(upper_ms)


class Handlers:
    def __init__(
        self,
        delays: DelaySource,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delays = delays
        self._sleep = sleep

    async def _pause(self, upper_ms: int):
        # suspends only this request; other requests keep running
        await self._sleep(self.delays.delay_ms(upper_ms) / 1000.0)

    async def stable(self):
        return STABLE_BODY

    async def fast_random(self):
        await self._pause(FAST_RANDOM_MAX_MS)
        return FAST_RANDOM_BODY

    async def slow_random(self):
        await self._pause(SLOW_RANDOM_MAX_MS)
        return SLOW_RANDOM_BODY

    async def not_found(self):
        return Response(status_code=404)

    async def internal_error(self):
        return Response(status_code=500)
