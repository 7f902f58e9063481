import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path


class StabilityResult(str, Enum):
    STABLE = "stable"
    VANISHED = "vanished"
    TIMED_OUT = "timed_out"


class StabilityGate:
    """Waits until a freshly created file has stopped growing.

    Create events fire when a file is opened for writing, so the size is polled
    until it is unchanged for ``threshold`` consecutive polls. Running out of
    ``max_wait_seconds`` is reported as TIMED_OUT and callers proceed anyway.
    """

    def __init__(
        self,
        poll_interval_seconds: float = 0.5,
        threshold: int = 3,
        max_wait_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._poll_interval = poll_interval_seconds
        self._threshold = threshold
        self._max_wait = max_wait_seconds
        self._sleep = sleep
        self._clock = clock

    async def await_stable(
        self,
        path: str | Path,
        max_wait_seconds: float | None = None,
    ) -> StabilityResult:
        """Poll ``path`` until its size settles, it disappears, or time runs out.

        Raises:
            OSError: for stat failures other than the file being missing.
        """
        max_wait = self._max_wait if max_wait_seconds is None else max_wait_seconds
        path = Path(path)
        started = self._clock()
        last_size: int | None = None
        unchanged_polls = 0

        while self._clock() - started < max_wait:
            try:
                size = path.stat().st_size
            except FileNotFoundError:
                return StabilityResult.VANISHED

            if size == last_size:
                unchanged_polls += 1
                if unchanged_polls >= self._threshold:
                    return StabilityResult.STABLE
            else:
                unchanged_polls = 0
                last_size = size

            await self._sleep(self._poll_interval)

        return StabilityResult.TIMED_OUT
