"""Process-wide cap on concurrently running I/O operations."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Any, TypeVar

from repo_ingest.settings import DEFAULT_LIMITS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")


class BoundedTaskRunner:
    """Run asynchronous units of work with at most ``concurrency`` in flight.

    Callers beyond the ceiling wait in arrival order. When a unit finishes,
    successfully or not, its slot is handed straight to the oldest waiter, so
    queued work cannot be overtaken by newcomers.

    The runner holds no loop-bound primitive: waiters are plain futures created
    on the running loop, which lets a single instance serve successive
    ``asyncio.run`` calls.
    """

    def __init__(self, concurrency: int) -> None:
        if concurrency < 1:
            msg = f"concurrency must be >= 1, got {concurrency}"
            raise ValueError(msg)
        self.concurrency = concurrency
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def active(self) -> int:
        """Number of units currently holding a slot."""
        return self._active

    @property
    def pending(self) -> int:
        """Number of callers waiting for a slot."""
        return sum(1 for fut in self._waiters if not fut.done())

    async def _acquire(self) -> None:
        if self._active < self.concurrency and not self.pending:
            self._active += 1
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            # the slot may have been handed over just before the cancellation
            if fut.done() and not fut.cancelled():
                self._release()
            raise

    def _release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        self._active -= 1

    async def run(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await ``func()`` once a slot is free and return its result.

        Args:
            func: zero-argument callable producing the awaitable to run.

        Returns:
            T: whatever the awaitable returns; exceptions propagate unchanged.
        """
        await self._acquire()
        try:
            return await func()
        finally:
            self._release()

    async def run_blocking(self, func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:  # noqa: ANN401
        """Run a blocking call in a worker thread while holding a slot.

        Returns:
            T: the return value of ``func(*args, **kwargs)``.
        """
        return await self.run(lambda: asyncio.to_thread(func, *args, **kwargs))


runner = BoundedTaskRunner(DEFAULT_LIMITS.concurrency)
