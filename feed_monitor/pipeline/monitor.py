"""Feed monitor service - wires options, storage, fetcher and scheduler."""

from datetime import timezone
from typing import Optional

import structlog

from ..config.options import Candidate, ConfigStore, SettingsUpdate
from ..config.settings import settings
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.interfaces import FeedConfig, FetcherInterface
from ..scheduling.scheduler import FeedScheduler, TickResult
from ..storage.database import RecordStore

logger = structlog.get_logger()


class FeedMonitor:
    """The monitor as one explicitly constructed object.

    Build it once at process start, call activate() to create tables, store
    default options and arm the timer, and deactivate() on shutdown.
    """

    def __init__(
        self,
        config_store: ConfigStore = None,
        record_store: RecordStore = None,
        fetcher: FetcherInterface = None,
        scheduler: FeedScheduler = None,
        database_url: str = None,
    ):
        database_url = database_url or settings.database_url
        self.config_store = config_store or ConfigStore(database_url)
        self.record_store = record_store or RecordStore(database_url)
        self.fetcher = fetcher or FeedFetcher()
        self.scheduler = scheduler or FeedScheduler(
            config_store=self.config_store,
            fetcher=self.fetcher,
            record_store=self.record_store,
        )

    def activate(self) -> FeedConfig:
        """Create tables, store default options, arm the fetch timer."""
        self.record_store.create_tables()
        config = self.config_store.initialize()
        self.scheduler.start(config.fetch_interval.period)
        logger.info(
            "monitor_activated",
            url=config.feed_url[:50],
            frequency=config.fetch_interval.value,
            next_run_at=self._next_run_iso(),
        )
        return config

    def deactivate(self) -> None:
        """Clear the scheduled fetch."""
        self.scheduler.stop()
        logger.info("monitor_deactivated")

    async def shutdown(self) -> None:
        """Deactivate and release the timer host and HTTP session."""
        self.deactivate()
        host = self.scheduler.host
        if host is not None and host.running:
            host.shutdown(wait=False)
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()

    async def update_settings(self, candidate: Candidate) -> SettingsUpdate:
        """Store new options and react to what changed.

        A new or changed URL fetches immediately. A URL or frequency change
        re-arms the timer with the frequency now in force. A retention-only
        change takes effect at the next tick's pruning.
        """
        update = self.config_store.set(candidate)

        if update.url_changed and update.config.feed_url:
            await self.scheduler.run_once_now()

        if update.url_changed or update.interval_changed:
            self.scheduler.reconfigure(update.config.fetch_interval.period)

        logger.info(
            "settings_updated",
            url_changed=update.url_changed,
            interval_changed=update.interval_changed,
            retention_changed=update.retention_changed,
            next_run_at=self._next_run_iso(),
        )
        return update

    async def fetch_now(self) -> TickResult:
        """Run one fetch-and-retain cycle outside the schedule."""
        return await self.scheduler.run_once_now()

    def status(self) -> dict:
        """Current configuration and schedule, for display."""
        config = self.config_store.get()
        return {
            "feed_url": config.feed_url,
            "frequency": config.fetch_interval.value,
            "delete_every": config.retention_window.value,
            "scheduler_state": self.scheduler.state.value,
            "next_run_at": self._next_run_iso(),
            "records": self.record_store.count(),
        }

    def _next_run_iso(self) -> Optional[str]:
        next_run = self.scheduler.next_run_at
        if next_run is None:
            return None
        return next_run.replace(tzinfo=timezone.utc).isoformat()
