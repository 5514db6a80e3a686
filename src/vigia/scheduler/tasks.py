"""Cancellable periodic tasks and the liveness token.

PeriodicTask runs an async callback on a fixed interval inside one asyncio
task. Stopping it sets an event that ends the wait between runs; a run that
is already executing is left to finish, so its network requests are never
cut off. Callers that must not observe the late result check a
CancellationToken before committing it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable


logger = logging.getLogger(__name__)


class CancellationToken:
    """One-way liveness flag shared along an async call chain.

    Cancelled once, cancelled forever. Checked after every await that
    precedes a state commit.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for callback in self._callbacks:
            callback()
        self._callbacks.clear()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` when cancelled (immediately if already cancelled)."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)


class StopHandle:
    """Returned by PeriodicTask.start(); stops the schedule.

    When the task owns its token, stopping also cancels the token so a run
    still in progress cannot deliver its result.
    """

    def __init__(
        self,
        stop_event: asyncio.Event,
        task: asyncio.Task,
        token: CancellationToken | None = None,
    ) -> None:
        self._stop_event = stop_event
        self._task = task
        self._token = token

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """End the schedule. Idempotent. An in-progress run finishes."""
        self._stop_event.set()
        if self._token is not None:
            self._token.cancel()

    async def wait(self) -> None:
        """Wait until the loop has exited."""
        await asyncio.shield(self._task)


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until stopped.

    Args:
        interval: Seconds between the end of one run and the next
        callback: Async callable invoked on each tick
        name: Task name used in logs
        run_immediately: Run once before the first wait
        token: Stops the schedule when cancelled
        owns_token: Stopping the handle also cancels ``token``
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        name: str = "periodic",
        run_immediately: bool = False,
        token: CancellationToken | None = None,
        owns_token: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self.callback = callback
        self.name = name
        self.run_immediately = run_immediately
        self.token = token
        self.owns_token = owns_token
        self.runs = 0

    def start(self) -> StopHandle:
        """Schedule the loop on the running event loop."""
        stop_event = asyncio.Event()
        task = asyncio.create_task(self._loop(stop_event), name=self.name)
        handle = StopHandle(stop_event, task, token=self.token if self.owns_token else None)
        if self.token is not None:
            self.token.on_cancel(handle.stop)
        logger.info("%s scheduled every %.0fs", self.name, self.interval)
        return handle

    async def _tick(self) -> None:
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s run failed", self.name)
        self.runs += 1

    async def _loop(self, stop_event: asyncio.Event) -> None:
        try:
            if self.run_immediately:
                await self._tick()
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                    break
                except asyncio.TimeoutError:
                    pass
                await self._tick()
        finally:
            stop_event.set()
            logger.debug("%s stopped after %d runs", self.name, self.runs)
