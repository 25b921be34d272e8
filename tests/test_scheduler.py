"""Tests for per-provider request scheduling."""

import asyncio

import pytest
from streamfall.models.credential import ProviderSession
from streamfall.models.enums import Priority
from streamfall.services.scheduler import RequestScheduler, SchedulerRegistry

from tests.conftest import FakeClock


def make_scheduler(clock: FakeClock, min_interval: float = 0.3) -> RequestScheduler:
    return RequestScheduler(
        "soundcloud", min_interval=min_interval, clock=clock, sleep=clock.sleep
    )


class TestPacing:
    """Tests for minimum spacing between dispatches."""

    @pytest.mark.asyncio
    async def test_dispatches_spaced_by_min_interval(
        self, fake_clock: FakeClock
    ) -> None:
        """Concurrent callers should be dispatched at least min_interval apart."""
        scheduler = make_scheduler(fake_clock)
        dispatched: list[float] = []

        async def call() -> None:
            dispatched.append(fake_clock())

        try:
            await asyncio.gather(
                *(scheduler.schedule(call, Priority.LOW) for _ in range(5))
            )
        finally:
            await scheduler.close()

        gaps = [b - a for a, b in zip(dispatched, dispatched[1:], strict=False)]
        assert len(dispatched) == 5
        assert all(gap >= 0.3 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_first_dispatch_not_delayed(self, fake_clock: FakeClock) -> None:
        """Should not wait before the very first request."""
        scheduler = make_scheduler(fake_clock)

        async def call() -> str:
            return "ok"

        try:
            assert await scheduler.schedule(call) == "ok"
        finally:
            await scheduler.close()

        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_no_wait_when_interval_already_passed(
        self, fake_clock: FakeClock
    ) -> None:
        """Should only sleep for the remainder of the interval."""
        scheduler = make_scheduler(fake_clock)

        async def call() -> None:
            return None

        try:
            await scheduler.schedule(call)
            fake_clock.now += 0.1
            await scheduler.schedule(call)
            fake_clock.now += 1.0
            await scheduler.schedule(call)
        finally:
            await scheduler.close()

        assert fake_clock.sleeps == [pytest.approx(0.2)]

    @pytest.mark.asyncio
    async def test_records_dispatch_time_on_session(
        self, fake_clock: FakeClock
    ) -> None:
        """Should update the provider session's last request time."""
        session = ProviderSession()
        scheduler = RequestScheduler(
            "vk", session=session, clock=fake_clock, sleep=fake_clock.sleep
        )

        async def call() -> None:
            return None

        try:
            await scheduler.schedule(call)
        finally:
            await scheduler.close()

        assert session.last_request_at == fake_clock.now


class TestPriority:
    """Tests for lane ordering."""

    @pytest.mark.asyncio
    async def test_high_runs_before_earlier_low(self, fake_clock: FakeClock) -> None:
        """A high-priority call queued after a low one should run first."""
        scheduler = make_scheduler(fake_clock)
        order: list[str] = []

        def record(name: str):
            async def call() -> None:
                order.append(name)

            return call

        try:
            low = scheduler.schedule(record("low"), Priority.LOW)
            high = scheduler.schedule(record("high"), Priority.HIGH)
            await asyncio.gather(low, high)
        finally:
            await scheduler.close()

        assert order == ["high", "low"]

    @pytest.mark.asyncio
    async def test_fifo_within_lane(self, fake_clock: FakeClock) -> None:
        """Calls in the same lane keep arrival order."""
        scheduler = make_scheduler(fake_clock)
        order: list[int] = []

        def record(n: int):
            async def call() -> None:
                order.append(n)

            return call

        try:
            await asyncio.gather(
                *(scheduler.schedule(record(n), Priority.HIGH) for n in range(4))
            )
        finally:
            await scheduler.close()

        assert order == [0, 1, 2, 3]


class TestFailures:
    """Tests for failing and cancelled calls."""

    @pytest.mark.asyncio
    async def test_failure_rejects_only_its_future(
        self, fake_clock: FakeClock
    ) -> None:
        """A failing call should not stop the loop."""
        scheduler = make_scheduler(fake_clock)

        async def broken() -> None:
            raise RuntimeError("boom")

        async def fine() -> str:
            return "ok"

        try:
            failing = scheduler.schedule(broken)
            passing = scheduler.schedule(fine)
            with pytest.raises(RuntimeError, match="boom"):
                await failing
            assert await passing == "ok"
        finally:
            await scheduler.close()

    @pytest.mark.asyncio
    async def test_cancelled_calls_are_skipped(self, fake_clock: FakeClock) -> None:
        """Calls cancelled before dispatch should never run."""
        scheduler = make_scheduler(fake_clock)
        ran: list[str] = []

        async def call() -> None:
            ran.append("run")

        try:
            future = scheduler.schedule(call)
            future.cancel()
            assert scheduler.pending == 0
            await scheduler.schedule(call)
        finally:
            await scheduler.close()

        assert ran == ["run"]

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self, fake_clock: FakeClock) -> None:
        """Closing should cancel queued calls and stop the loop."""
        scheduler = make_scheduler(fake_clock)

        async def call() -> None:
            return None

        future = scheduler.schedule(call)
        await scheduler.close()

        assert future.cancelled()
        assert scheduler.is_running is False


class TestSchedulerRegistry:
    """Tests for the per-provider registry."""

    @pytest.mark.asyncio
    async def test_one_scheduler_per_provider(self) -> None:
        """Should reuse schedulers per provider and keep providers apart."""
        registry = SchedulerRegistry(0.0)

        try:
            assert registry.get("soundcloud") is registry.get("soundcloud")
            assert registry.get("soundcloud") is not registry.get("vk")
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_schedule_runs_call(self) -> None:
        """Should run calls on the provider's scheduler."""
        registry = SchedulerRegistry(0.0)

        async def call() -> int:
            return 42

        try:
            assert await registry.schedule("yandex", call, Priority.HIGH) == 42
        finally:
            await registry.close()

    @pytest.mark.asyncio
    async def test_providers_do_not_wait_for_each_other(
        self, fake_clock: FakeClock
    ) -> None:
        """Different providers should not share pacing."""
        registry = SchedulerRegistry(0.3, clock=fake_clock, sleep=fake_clock.sleep)

        async def call() -> None:
            return None

        try:
            await registry.schedule("soundcloud", call)
            await registry.schedule("vk", call)
        finally:
            await registry.close()

        assert fake_clock.sleeps == []
