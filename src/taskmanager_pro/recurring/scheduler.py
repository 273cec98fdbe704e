"""
In-process daily scheduler for recurring tasks.

A single daemon thread sleeps until the next run time (``run_hour``:00
local time), calls ``RecurringTaskService.run_daily`` and loops. For
multi-process deployments leave it disabled and call
``flask recurring run`` from system cron instead.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from .service import RecurringTaskService

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime, *, run_hour: int) -> float:
    target = now.replace(hour=int(run_hour), minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class RecurringTaskScheduler:
    def __init__(
        self,
        service: RecurringTaskService,
        *,
        run_hour: int = 0,
        clock: Callable[[], datetime] = now_local,
    ):
        if not 0 <= int(run_hour) <= 23:
            raise ValueError("run_hour must be between 0 and 23")
        self._service = service
        self._run_hour = int(run_hour)
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="recurring-task-scheduler", daemon=True)
        self._thread.start()
        logger.info("Recurring task scheduler started (daily at %02d:00)", self._run_hour)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Recurring task scheduler stopped")

    def run_once(self) -> None:
        try:
            self._service.run_daily()
        except Exception:
            logger.exception("Error in recurring tasks job")

    def _loop(self) -> None:
        while not self._stop.is_set():
            delay = seconds_until_next_run(self._clock(), run_hour=self._run_hour)
            logger.debug("Next recurring run in %.0fs", delay)
            if self._stop.wait(delay):
                break
            self.run_once()
