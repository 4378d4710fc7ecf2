"""Unit tests for core.cache.scheduler (cron loop with injected clock and sleep)."""

import asyncio
from datetime import datetime, timezone

import pytest

from app.core.cache import ContainerCacheScheduler, ReconcilePhase
from app.core.cache.scheduler import next_fire_time, to_croniter_expr

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_to_croniter_expr_moves_seconds_last() -> None:
    assert to_croniter_expr("0 */5 * * * *") == "*/5 * * * * 0"
    assert to_croniter_expr("*/5 * * * *") == "*/5 * * * *"


def test_to_croniter_expr_rejects_bad_field_count() -> None:
    with pytest.raises(ValueError):
        to_croniter_expr("* * *")


def test_next_fire_time_every_five_minutes() -> None:
    assert next_fire_time("0 */5 * * * *", T0) == datetime(2024, 1, 1, 12, 5, 0, tzinfo=timezone.utc)
    after = datetime(2024, 1, 1, 12, 3, 30, tzinfo=timezone.utc)
    assert next_fire_time("0 */5 * * * *", after) == datetime(2024, 1, 1, 12, 5, 0, tzinfo=timezone.utc)


def test_next_fire_time_with_seconds() -> None:
    assert next_fire_time("*/15 * * * * *", T0) == datetime(2024, 1, 1, 12, 0, 15, tzinfo=timezone.utc)


def test_invalid_cron_rejected() -> None:
    with pytest.raises(ValueError):
        ContainerCacheScheduler(lambda: None, "61 * * * * *")


class _FakeClock:
    """now() advances by each requested sleep; stops the scheduler after *limit* sleeps."""

    def __init__(self, limit: int) -> None:
        self.current = T0
        self.sleeps: list[float] = []
        self.limit = limit
        self.scheduler: ContainerCacheScheduler | None = None

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current = datetime.fromtimestamp(self.current.timestamp() + seconds, timezone.utc)
        if len(self.sleeps) > self.limit and self.scheduler is not None:
            self.scheduler._stopping = True


def _scheduler(run_once, clock: _FakeClock, cron: str = "0 */5 * * * *") -> ContainerCacheScheduler:  # noqa: ANN001
    s = ContainerCacheScheduler(run_once, cron, now=clock.now, sleep=clock.sleep)
    clock.scheduler = s
    return s


def test_run_fires_on_schedule() -> None:
    calls: list[datetime] = []
    clock = _FakeClock(limit=3)
    s = _scheduler(lambda: calls.append(clock.current), clock)

    asyncio.run(s.run())

    assert clock.sleeps == [300.0, 300.0, 300.0, 300.0]
    assert s.runs == 3
    assert calls[0] == datetime(2024, 1, 1, 12, 5, 0, tzinfo=timezone.utc)


def test_failed_run_does_not_stop_the_loop() -> None:
    attempts: list[int] = []

    def _boom() -> None:
        attempts.append(1)
        raise RuntimeError("cache down")

    clock = _FakeClock(limit=2)
    s = _scheduler(_boom, clock)

    asyncio.run(s.run())

    assert len(attempts) == 2
    assert s.runs == 2


def test_disabled_scheduler_does_nothing() -> None:
    calls: list[int] = []
    s = ContainerCacheScheduler(lambda: calls.append(1), "0 */5 * * * *", enabled=False)

    async def _go() -> None:
        assert s.start() is None
        await s.run()
        await s.stop()

    asyncio.run(_go())
    assert calls == []
    assert s.phase == ReconcilePhase.DISABLED


def test_start_and_stop_cancels_sleep() -> None:
    calls: list[int] = []
    s = ContainerCacheScheduler(lambda: calls.append(1), "0 */5 * * * *")

    async def _go() -> None:
        task = s.start()
        assert task is not None
        assert s.start() is task
        await asyncio.sleep(0)
        await s.stop()
        assert task.done()

    asyncio.run(_go())
    assert calls == []
    assert s.runs == 0
