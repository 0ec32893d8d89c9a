"""
Cancelable delayed recompute ("debounce") on top of APScheduler.

Each input stream gets one job id.  Scheduling again before the job fires
replaces the pending job, so only the most recent request executes.  A
per-stream generation counter guards the narrow window where a replaced job
has already been handed to the executor, and the single-worker executor
runs deferred tasks one at a time so they never finish out of order.

Design:
    - One ``BackgroundScheduler`` per :class:`Debouncer`, started lazily.
    - ``DateTrigger`` jobs, ``replace_existing=True`` keyed by stream.
    - Task failures are logged, never propagated into the scheduler thread.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)

_JOB_PREFIX = "debounce:"


class Debouncer:
    """Run only the latest of a burst of requests, after ``delay_seconds`` idle."""

    def __init__(
        self,
        delay_seconds: float = 0.3,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be ≥ 0, got {delay_seconds!r}")
        self.delay_seconds = delay_seconds
        self._scheduler = scheduler or BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": None},
            timezone=timezone.utc,
        )
        self._lock = threading.Lock()
        self._generation: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.debug("Debounce scheduler started (delay=%.3fs)", self.delay_seconds)

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def submit(self, key: str, func: Callable[..., Any], *args, **kwargs) -> int:
        """Schedule ``func(*args, **kwargs)`` for stream ``key``.

        Any request still pending for ``key`` is discarded.  Returns the
        generation number of the new request.
        """
        with self._lock:
            generation = self._generation.get(key, 0) + 1
            self._generation[key] = generation

        self.start()
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.delay_seconds)
        self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=run_date),
            args=[key, generation, func, args, kwargs],
            id=_JOB_PREFIX + key,
            name=f"Debounced recompute ({key})",
            replace_existing=True,
        )
        return generation

    def cancel(self, key: str) -> bool:
        """Drop the pending request for ``key``.  True if one was pending."""
        with self._lock:
            self._generation[key] = self._generation.get(key, 0) + 1
        try:
            self._scheduler.remove_job(_JOB_PREFIX + key)
        except JobLookupError:
            return False
        return True

    def pending(self, key: str) -> bool:
        return self._scheduler.get_job(_JOB_PREFIX + key) is not None

    def _run(self, key, generation, func, args, kwargs) -> None:
        with self._lock:
            current = self._generation.get(key)
        if current != generation:
            logger.debug("Dropping stale request %d for %s (latest %s)", generation, key, current)
            return
        try:
            func(*args, **kwargs)
        except Exception as exc:
            logger.error("Debounced task %s failed: %s", key, exc, exc_info=True)
