"""Fetch-and-retain scheduler.

A single timer job, registered on an APScheduler host under the cron hook
name, drives the tick: fetch the configured feed, store the payload, prune
records older than the retention window. The job is a one-shot DateTrigger
re-armed after every tick at ``now + period``, so a slow tick pushes the next
run back instead of overlapping it.

States:
    IDLE     no timer armed
    ARMED    timer pending, next_run_at set
    RUNNING  a timer-driven tick is in progress

Ticks and run_once_now share one asyncio.Lock. A timer fire that finds the
lock held is coalesced: nothing runs and the timer is re-armed.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
import structlog

from .. import retention
from ..config.options import ConfigStore
from ..config.settings import settings
from ..errors import FetchError
from ..ingestion.interfaces import FetcherInterface, StorageInterface

logger = structlog.get_logger()


class SchedulerState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"


class TickStatus(Enum):
    STORED = "stored"        # fetched, stored and pruned
    FAILED = "failed"        # fetch or storage failed, nothing stored
    SKIPPED = "skipped"      # no feed URL configured
    COALESCED = "coalesced"  # another tick held the lock


@dataclass
class TickResult:
    """Outcome of one execution of the tick body."""
    status: TickStatus
    record_id: Optional[int] = None
    pruned: int = 0
    error: Optional[str] = None


class FeedScheduler:
    """Owns the repeating fetch timer and the tick body."""

    def __init__(
        self,
        config_store: ConfigStore,
        fetcher: FetcherInterface,
        record_store: StorageInterface,
        host=None,
        hook: str = None,
        clock: Callable[[], datetime] = None,
        max_attempts: int = None,
        retry_wait=None,
    ):
        self.config_store = config_store
        self.fetcher = fetcher
        self.record_store = record_store
        self.host = host
        self.hook = hook or settings.cron_hook
        self.clock = clock or datetime.utcnow
        self.max_attempts = max(1, max_attempts or settings.fetch_max_attempts)
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

        self.state = SchedulerState.IDLE
        self.period: Optional[timedelta] = None
        self.next_run_at: Optional[datetime] = None

        self._active = False
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        """True while any tick body (timer or immediate) is executing."""
        return self._lock.locked()

    def start(self, period: timedelta) -> None:
        """Arm the timer: first run at now + period."""
        if self.host is None:
            self.host = AsyncIOScheduler(timezone=timezone.utc)
        if not self.host.running:
            self.host.start()

        self._active = True
        self.period = period
        if self.state is SchedulerState.RUNNING:
            return
        self._arm()

    def reconfigure(self, new_period: timedelta) -> None:
        """Discard the current schedule and re-arm with new_period.

        A tick already running is left alone; the new period applies when it
        finishes and re-arms. A stopped scheduler only records the period and
        stays IDLE until start is called.
        """
        old_period = self.period
        self.period = new_period

        if not self._active:
            logger.info("reconfigure_while_stopped", hook=self.hook, period_seconds=new_period.total_seconds())
            return
        if self.state is SchedulerState.RUNNING:
            logger.info("reconfigure_deferred", hook=self.hook, period_seconds=new_period.total_seconds())
            return

        self._arm()
        logger.info(
            "scheduler_reconfigured",
            hook=self.hook,
            old_period_seconds=old_period.total_seconds() if old_period else None,
            period_seconds=new_period.total_seconds(),
        )

    def stop(self) -> None:
        """Cancel the pending timer. Nothing is armed until start is called again."""
        self._active = False
        self._cancel_pending()
        self.next_run_at = None
        if self.state is not SchedulerState.RUNNING:
            self.state = SchedulerState.IDLE
        logger.info("scheduler_stopped", hook=self.hook)

    async def tick(self) -> TickResult:
        """Timer-driven run of the tick body, then re-arm."""
        if self._lock.locked():
            logger.info("tick_coalesced", hook=self.hook)
            if self._active and self.state is not SchedulerState.RUNNING:
                self._arm()
            return TickResult(status=TickStatus.COALESCED)

        async with self._lock:
            self.state = SchedulerState.RUNNING
            try:
                result = await self._run_body()
            finally:
                if self._active:
                    self._arm()
                else:
                    self.state = SchedulerState.IDLE
        return result

    async def run_once_now(self) -> TickResult:
        """Run the tick body immediately; next_run_at is not touched."""
        async with self._lock:
            logger.info("immediate_fetch_started", hook=self.hook)
            return await self._run_body()

    def _arm(self) -> None:
        self.next_run_at = self.clock() + self.period
        self._cancel_pending()
        if self.host is not None:
            self.host.add_job(
                self.tick,
                DateTrigger(run_date=self.next_run_at, timezone=timezone.utc),
                id=self.hook,
                name="Fetch and retain RSS feed",
                replace_existing=True,
                misfire_grace_time=None,  # a late one-shot run still fires; a skipped one leaves no job
                coalesce=True,
                max_instances=1,
            )
        self.state = SchedulerState.ARMED
        logger.debug("scheduler_armed", hook=self.hook, next_run_at=self.next_run_at.isoformat())

    def _cancel_pending(self) -> None:
        if self.host is None:
            return
        try:
            self.host.remove_job(self.hook)
        except JobLookupError:
            pass

    async def _run_body(self) -> TickResult:
        config = self.config_store.get()
        if not config.feed_url:
            logger.info("tick_skipped", reason="no_feed_url")
            return TickResult(status=TickStatus.SKIPPED)

        try:
            payload = await self._fetch(config.feed_url)
        except FetchError as e:
            logger.warning(
                "feed_fetch_failed",
                url=config.feed_url[:80],
                error=str(e),
                status=getattr(e, "status", None),
            )
            return TickResult(status=TickStatus.FAILED, error=str(e))

        try:
            now = self.clock()
            record_id = self.record_store.insert(config.feed_url, payload, now)
            cutoff_at = retention.cutoff(now, config.retention_window)
            pruned = self.record_store.delete_older_than(cutoff_at)
        except Exception as e:
            logger.error("tick_failed", url=config.feed_url[:80], error=str(e))
            return TickResult(status=TickStatus.FAILED, error=str(e))

        logger.info(
            "tick_completed",
            record_id=record_id,
            size=len(payload),
            pruned=pruned,
            delete_every=config.retention_window.value,
        )
        return TickResult(status=TickStatus.STORED, record_id=record_id, pruned=pruned)

    async def _fetch(self, url: str) -> bytes:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(FetchError),
            reraise=True,
        ):
            with attempt:
                return await self.fetcher.fetch(url)
