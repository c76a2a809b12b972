"""Live countdown to the next app-day reset.

The countdown caches the next reset instant and refreshes it on a fixed
cadence. Every tick also recomputes the canonical next reset from the
clock and replaces the cached value when they differ, so clock changes,
offset changes and process suspension never leave it pointing at a
stale boundary, whatever the tick interval.
"""

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from loguru import logger

from ..gateways import Clock, SystemClock
from .day_boundary import format_hms, ms_until, next_day_start, split_hms

ElapsedCallback = Callable[[datetime], Awaitable[None] | None]


@dataclass(frozen=True)
class CountdownSnapshot:
    """Read model of the countdown at one instant."""

    hours_remaining: int
    minutes_remaining: int
    seconds_remaining: int
    formatted: str
    ms_remaining: int
    is_elapsed: bool
    next_reset: datetime

    @classmethod
    def build(cls, ms_remaining: int, next_reset: datetime) -> "CountdownSnapshot":
        clamped = max(0, ms_remaining)
        hours, minutes, seconds = split_hms(clamped)
        return cls(
            hours_remaining=hours,
            minutes_remaining=minutes,
            seconds_remaining=seconds,
            formatted=format_hms(clamped),
            ms_remaining=clamped,
            is_elapsed=clamped == 0,
            next_reset=next_reset,
        )

    def to_dict(self) -> dict:
        return {
            "hours_remaining": self.hours_remaining,
            "minutes_remaining": self.minutes_remaining,
            "seconds_remaining": self.seconds_remaining,
            "formatted": self.formatted,
            "ms_remaining": self.ms_remaining,
            "is_elapsed": self.is_elapsed,
            "next_reset": self.next_reset.isoformat(),
        }


class ResetCountdown:
    """Polling countdown to the next app-day start.

    Use as an async context manager so the timer task is always
    released:

        async with ResetCountdown(offset_hours=5) as countdown:
            countdown.on_elapsed(handler)
            ...

    `tick()` and `resume()` are synchronous and can be driven directly
    (e.g. from tests or from a host that owns its own scheduler).
    """

    def __init__(
        self,
        offset_hours: int = 0,
        clock: Clock | None = None,
        interval: float = 1.0,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._clock = clock or SystemClock()
        self._offset_hours = offset_hours
        self.interval = interval
        self._callbacks: list[ElapsedCallback] = []
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._target: datetime | None = None
        self._snapshot: CountdownSnapshot | None = None
        self._recompute(notify=False)

    @property
    def offset_hours(self) -> int:
        return self._offset_hours

    @property
    def target(self) -> datetime:
        """Cached next reset instant."""
        return self._target

    @property
    def snapshot(self) -> CountdownSnapshot:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_elapsed(self, callback: ElapsedCallback) -> Callable[[], None]:
        """Register a callback fired with the boundary that just passed.

        Returns a function that unregisters the callback.
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def tick(self) -> CountdownSnapshot:
        """Refresh the countdown from the clock."""
        now = self._clock.now()

        if self._target <= now:
            self._set_target(next_day_start(now, self._offset_hours), now)
            return self._snapshot

        canonical = next_day_start(now, self._offset_hours)
        if canonical != self._target:
            logger.bind(cached=self._target.isoformat(), canonical=canonical.isoformat()).debug(
                "Countdown target drifted, correcting"
            )
            self._set_target(canonical, now)
            return self._snapshot

        self._snapshot = CountdownSnapshot.build(ms_until(self._target, now), self._target)
        return self._snapshot

    def resume(self) -> CountdownSnapshot:
        """Force a canonical recomputation after the host was suspended."""
        self._recompute(notify=True)
        return self._snapshot

    def set_offset(self, offset_hours: int) -> CountdownSnapshot:
        """Change the day offset and re-anchor immediately."""
        self._offset_hours = offset_hours
        self._recompute(notify=False)
        return self._snapshot

    def start(self) -> None:
        """Start the timer task on the running event loop."""
        if self.is_running:
            return
        self._recompute(notify=False)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the timer and any callback tasks still in flight."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        pending = list(self._pending)
        for pending_task in pending:
            pending_task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

    async def __aenter__(self) -> "ResetCountdown":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    def _recompute(self, notify: bool) -> None:
        now = self._clock.now()
        self._set_target(next_day_start(now, self._offset_hours), now, notify=notify)

    def _set_target(self, target: datetime, now: datetime, notify: bool = True) -> None:
        previous = self._target
        self._target = target
        self._snapshot = CountdownSnapshot.build(ms_until(target, now), target)
        if notify and previous is not None and target > previous:
            self._notify(previous)

    def _notify(self, boundary: datetime) -> None:
        logger.info(f"App day reset at {boundary.isoformat()}")
        for callback in list(self._callbacks):
            try:
                result = callback(boundary)
            except Exception:
                logger.exception("Countdown elapsed callback failed")
                continue

            if inspect.isawaitable(result):
                self._schedule(result)

    def _schedule(self, awaitable: Awaitable) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping async elapsed callback")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error("Countdown elapsed callback failed")
