"""Time and cancellation primitives for the polling loop."""

import asyncio
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0))


class CancellationToken:
    """Cooperative stop signal shared by a pairing attempt and its poller."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


async def sleep_unless_cancelled(clock: Clock, seconds: float, token: CancellationToken) -> bool:
    """Sleep on ``clock``; return early if ``token`` fires. True when cancelled."""
    if token.cancelled:
        return True
    sleeper = asyncio.ensure_future(clock.sleep(seconds))
    canceller = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, canceller):
            if not task.done():
                task.cancel()
    return token.cancelled


__all__ = ["CancellationToken", "Clock", "SystemClock", "sleep_unless_cancelled"]
