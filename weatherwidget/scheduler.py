"""Periodic refresh task: runs a job now and then on a fixed interval.

The loop lives in a single asyncio task, so stopping it is a plain
cancellation that ``stop()`` awaits before returning.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from weatherwidget.models.common import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3600  # 1 hour


class RefreshScheduler:
    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        interval: float = DEFAULT_INTERVAL,
        name: str = "forecast-refresh",
    ):
        self.job = job
        self.interval = interval
        self.name = name
        self._task: asyncio.Task | None = None
        self._total_runs = 0
        self._total_successes = 0
        self._total_failures = 0
        self._started_at: str | None = None
        self._last_run_at: str | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop. No-op if already running."""
        if self.running:
            return
        self._started_at = utc_now_iso()
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info("Scheduler %s started, interval=%ss", self.name, self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(
            "Scheduler %s stopped: %d runs (%d ok, %d failed)",
            self.name, self._total_runs, self._total_successes, self._total_failures,
        )

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    async def run_once(self) -> bool:
        """Execute a single tick. Returns True on success."""
        self._total_runs += 1
        try:
            await self.job()
        except Exception:
            self._total_failures += 1
            logger.exception("Scheduler %s run #%d crashed", self.name, self._total_runs)
            return False
        else:
            self._total_successes += 1
            return True
        finally:
            self._last_run_at = utc_now_iso()

    def stats(self) -> dict:
        return {
            "name": self.name,
            "running": self.running,
            "interval": self.interval,
            "started_at": self._started_at,
            "last_run_at": self._last_run_at,
            "total_runs": self._total_runs,
            "total_successes": self._total_successes,
            "total_failures": self._total_failures,
        }
