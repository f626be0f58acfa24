"""Fixed minimum response latency.

Every exit path of a wrapped block (return or raise) finishes no earlier
than ``min_seconds`` after entry, so callers cannot tell a missing note
from an expired or valid one by response time.
"""

import asyncio
import time


class ResponseFloor:
    def __init__(self, min_seconds: float):
        self.min_seconds = max(min_seconds, 0.0)
        self._started = 0.0

    async def __aenter__(self) -> "ResponseFloor":
        self._started = time.monotonic()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        remaining = self.min_seconds - (time.monotonic() - self._started)
        if remaining > 0:
            await asyncio.sleep(remaining)
