"""Interface definitions for feed ingestion and storage."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional


class FetchInterval(Enum):
    """How often the feed is fetched."""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"

    @property
    def period(self) -> timedelta:
        return _FETCH_PERIODS[self]


_FETCH_PERIODS = {
    FetchInterval.HOURLY: timedelta(hours=1),
    FetchInterval.DAILY: timedelta(days=1),
    FetchInterval.WEEKLY: timedelta(weeks=1),
}


class RetentionWindow(Enum):
    """How long fetched payloads are kept before pruning."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


DEFAULT_FETCH_INTERVAL = FetchInterval.HOURLY
DEFAULT_RETENTION_WINDOW = RetentionWindow.WEEK


@dataclass(frozen=True)
class FeedConfig:
    """Configuration of the monitored feed.

    Always complete: every field holds a valid value, an empty URL means no
    feed has been configured yet.
    """
    feed_url: str = ""
    fetch_interval: FetchInterval = DEFAULT_FETCH_INTERVAL
    retention_window: RetentionWindow = DEFAULT_RETENTION_WINDOW

    def to_dict(self) -> dict:
        """Convert to the stored option form."""
        return {
            "rss_feed_url": self.feed_url,
            "rss_feed_frequency": self.fetch_interval.value,
            "delete_every": self.retention_window.value,
        }


@dataclass
class FeedRecord:
    """One stored feed payload."""
    id: Optional[int] = None
    feed_url: str = ""
    feed_data: bytes = b""
    retrieved_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def size(self) -> int:
        return len(self.feed_data)

    def to_dict(self) -> dict:
        """Convert to dictionary (payload omitted)."""
        return {
            "id": self.id,
            "feed_url": self.feed_url,
            "size": self.size,
            "retrieved_at": self.retrieved_at.isoformat() if self.retrieved_at else None,
        }


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch(self, url: str) -> bytes:
        """Fetch the raw payload at url, raising FetchError on failure."""
        raise NotImplementedError


class StorageInterface:
    """Interface for feed record storage."""

    def insert(self, feed_url: str, payload: bytes, timestamp: datetime) -> int:
        """Store a payload, return the new record ID."""
        raise NotImplementedError

    def list_all(self) -> List[FeedRecord]:
        """All records, newest first."""
        raise NotImplementedError

    def get(self, record_id: int) -> Optional[FeedRecord]:
        """Get record by ID, None if absent."""
        raise NotImplementedError

    def delete(self, record_id: int) -> bool:
        """Delete record by ID, return True if a row was removed."""
        raise NotImplementedError

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete records retrieved before cutoff, return count deleted."""
        raise NotImplementedError
