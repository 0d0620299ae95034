"""Pytest configuration and shared fixtures."""

import pytest
import asyncio
import tempfile
import os
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from feed_monitor.errors import HttpError


class FakeClock:
    """Settable replacement for datetime.utcnow."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> datetime:
        self.now = self.now + delta
        return self.now


class FakeFetcher:
    """Fetcher returning canned payloads or raising canned errors.

    Set ``gate`` to an asyncio.Event to hold fetches until it is set;
    ``started`` is set as soon as a fetch begins.
    """

    def __init__(self, payload: bytes = b"<rss><channel/></rss>", error: Exception = None):
        self.payload = payload
        self.error = error
        self.calls = []
        self.gate = None
        self.started = asyncio.Event()

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def clock():
    """Fixed clock at 2024-06-15 12:00:00 UTC."""
    return FakeClock(datetime(2024, 6, 15, 12, 0, 0))


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def failing_fetcher():
    return FakeFetcher(error=HttpError("https://example.com/feed.xml", 500, "Internal Server Error"))


@pytest.fixture
def timer_host():
    """Stand-in for the APScheduler host, already running."""
    host = MagicMock()
    host.running = True
    return host


@pytest.fixture
def config_store(temp_db):
    from feed_monitor.config.options import ConfigStore
    store = ConfigStore(temp_db)
    store.initialize()
    return store


@pytest.fixture
def record_store(temp_db):
    from feed_monitor.storage.database import RecordStore
    return RecordStore(temp_db)


@pytest.fixture
def sample_options():
    """Form-style options for a configured feed."""
    return {
        "rss_feed_url": "https://example.com/feed.xml",
        "rss_feed_frequency": "daily",
        "delete_every": "month",
    }


@pytest.fixture
def make_scheduler(config_store, record_store, timer_host, clock):
    """Build a FeedScheduler around the shared stores and a given fetcher."""
    from feed_monitor.scheduling.scheduler import FeedScheduler

    def _make(fetcher, **kwargs):
        return FeedScheduler(
            config_store=config_store,
            fetcher=fetcher,
            record_store=record_store,
            host=timer_host,
            clock=clock,
            **kwargs
        )
    return _make
