"""
Cron-driven background task that runs the container cache reconciliation.

The cron expression has six fields with seconds first
(``sec min hour dom month dow``). The loop sleeps until the next fire time,
re-checks the stop flag on wake and runs one reconciliation in a worker
thread. A failed run is logged and the loop keeps going.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from croniter import croniter

from .reconciler import ReconcilePhase

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_croniter_expr(expr: str) -> str:
    """Seconds-first six-field cron -> croniter's seconds-last form."""
    fields = expr.split()
    if len(fields) == 6:
        return " ".join(fields[1:] + fields[:1])
    if len(fields) == 5:
        return expr
    raise ValueError(f"Invalid cron expression {expr!r}: expected 5 or 6 fields")


def next_fire_time(expr: str, after: datetime) -> datetime:
    return croniter(to_croniter_expr(expr), after).get_next(datetime)


class ContainerCacheScheduler:
    """
    start() creates the loop task; stop() sets the flag and cancels the sleep.

    ``run_once`` is blocking (it is the reconciler) and runs via
    ``asyncio.to_thread``. ``now`` and ``sleep`` are injectable for tests.
    """

    def __init__(
        self,
        run_once: Callable[[], Any],
        cron: str,
        *,
        enabled: bool = True,
        now: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not croniter.is_valid(to_croniter_expr(cron)):
            raise ValueError(f"Invalid cron expression {cron!r}")
        self.run_once = run_once
        self.cron = cron
        self.enabled = enabled
        self._now = now
        self._sleep = sleep
        self._stopping = False
        self._task: asyncio.Task[None] | None = None
        self.runs = 0
        self.phase = ReconcilePhase.IDLE if enabled else ReconcilePhase.DISABLED

    def next_fire_time(self, after: datetime | None = None) -> datetime:
        return next_fire_time(self.cron, after or self._now())

    def start(self) -> asyncio.Task[None] | None:
        if not self.enabled:
            logger.info("Container cache scheduler is disabled")
            return None
        if self._task is None or self._task.done():
            self._stopping = False
            self._task = asyncio.create_task(self.run(), name="container-cache-scheduler")
            logger.info("Container cache scheduler started (cron=%s)", self.cron)
        return self._task

    async def stop(self) -> None:
        self._stopping = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Container cache scheduler stopped")

    async def run(self) -> None:
        """Scheduler loop; returns when stopped or disabled."""
        if not self.enabled:
            logger.info("Container cache scheduler is disabled")
            return
        while not self._stopping:
            now = self._now()
            fire_at = next_fire_time(self.cron, now)
            delay = max((fire_at - now).total_seconds(), 0.0)
            logger.debug("Next container cache sync at %s (in %.1fs)", fire_at.isoformat(), delay)
            await self._sleep(delay)
            if self._stopping:
                break
            await self._run_guarded()

    async def _run_guarded(self) -> None:
        try:
            await asyncio.to_thread(self.run_once)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled container cache sync failed")
        finally:
            self.runs += 1
