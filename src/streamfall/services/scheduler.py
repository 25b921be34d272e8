"""Per-provider request pacing with two priority lanes."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from streamfall.models.credential import ProviderSession
from streamfall.models.enums import Priority

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class QueueTask:
    """A deferred provider call waiting for its dispatch slot."""

    func: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]
    priority: Priority
    enqueued_at: float = field(default_factory=time.monotonic)


class RequestScheduler:
    """Dispatches one provider's calls serially, spaced by a minimum interval.

    Calls wait in a high or a low lane. Before each dispatch the loop
    sleeps until ``min_interval`` has passed since the previous one, then
    runs the oldest high-priority call, or the oldest low-priority call if
    the high lane is empty. A failing call rejects only its own future.

    The dispatch loop is an ``asyncio.Task`` started on the first
    ``schedule()`` call and stopped by ``close()``.
    """

    def __init__(
        self,
        provider: str,
        *,
        min_interval: float = 0.3,
        session: ProviderSession | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            provider: Provider name, used in logs.
            min_interval: Minimum seconds between two dispatches.
            session: Provider session whose ``last_request_at`` is updated.
            clock: Monotonic clock, injectable for tests.
            sleep: Sleep coroutine function, injectable for tests.
        """
        self._provider = provider
        self._min_interval = min_interval
        self._session = session
        self._clock = clock
        self._sleep = sleep
        self._lanes: dict[Priority, deque[QueueTask]] = {
            Priority.HIGH: deque(),
            Priority.LOW: deque(),
        }
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._last_request_at: float | None = None

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def pending(self) -> int:
        """Number of queued calls not yet dispatched."""
        return sum(
            1
            for lane in self._lanes.values()
            for task in lane
            if not task.future.cancelled()
        )

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_request_at(self) -> float | None:
        """Clock time of the most recent dispatch."""
        return self._last_request_at

    def schedule(
        self,
        func: Callable[[], Awaitable[T]],
        priority: Priority = Priority.LOW,
    ) -> asyncio.Future[T]:
        """Queue a call and return a future for its result.

        Args:
            func: Zero-argument coroutine function performing the call.
            priority: Lane to queue in.

        Returns:
            Future resolved with the call's result or its exception.
        """
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._lanes[priority].append(
            QueueTask(func=func, future=future, priority=priority)
        )
        self._ensure_running()
        self._wakeup.set()
        return future

    def _ensure_running(self) -> None:
        if not self.is_running:
            self._task = asyncio.create_task(
                self._run_loop(), name=f"scheduler-{self._provider}"
            )

    def _next_task(self) -> QueueTask | None:
        for priority in (Priority.HIGH, Priority.LOW):
            lane = self._lanes[priority]
            while lane:
                task = lane.popleft()
                if not task.future.cancelled():
                    return task
        return None

    async def _wait_for_slot(self) -> None:
        if self._last_request_at is None:
            return
        wait = self._min_interval - (self._clock() - self._last_request_at)
        if wait > 0:
            await self._sleep(wait)

    async def _run_loop(self) -> None:
        """Main dispatch loop."""
        while True:
            if not self.pending:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            await self._wait_for_slot()

            # Picked after the wait so calls queued meanwhile compete fairly
            task = self._next_task()
            if task is None:
                continue

            self._last_request_at = self._clock()
            if self._session is not None:
                self._session.last_request_at = self._last_request_at
            logger.debug(
                "Dispatching %s %s request (%d pending)",
                task.priority,
                self._provider,
                self.pending,
            )
            await self._dispatch(task)

    async def _dispatch(self, task: QueueTask) -> None:
        try:
            result = await task.func()
        except asyncio.CancelledError:
            task.future.cancel()
            raise
        except Exception as e:
            if not task.future.done():
                task.future.set_exception(e)
        else:
            if not task.future.done():
                task.future.set_result(result)

    async def close(self) -> None:
        """Stop the dispatch loop and cancel every queued call."""
        for lane in self._lanes.values():
            while lane:
                lane.popleft().future.cancel()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Scheduler for %s stopped", self._provider)


class SchedulerRegistry:
    """Holds one independent RequestScheduler per provider."""

    def __init__(
        self,
        min_interval: float = 0.3,
        *,
        session_for: Callable[[str], ProviderSession] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._min_interval = min_interval
        self._session_for = session_for
        self._clock = clock
        self._sleep = sleep
        self._schedulers: dict[str, RequestScheduler] = {}

    def get(self, provider: str) -> RequestScheduler:
        """Get the provider's scheduler, creating it on first use."""
        provider = str(provider)
        scheduler = self._schedulers.get(provider)
        if scheduler is None:
            scheduler = RequestScheduler(
                provider,
                min_interval=self._min_interval,
                session=self._session_for(provider) if self._session_for else None,
                clock=self._clock,
                sleep=self._sleep,
            )
            self._schedulers[provider] = scheduler
        return scheduler

    def schedule(
        self,
        provider: str,
        func: Callable[[], Awaitable[T]],
        priority: Priority = Priority.LOW,
    ) -> asyncio.Future[T]:
        """Queue a call on the provider's scheduler."""
        return self.get(provider).schedule(func, priority)

    async def close(self) -> None:
        """Stop every scheduler."""
        for scheduler in self._schedulers.values():
            await scheduler.close()
        self._schedulers.clear()
