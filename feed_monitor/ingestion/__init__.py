"""Data ingestion - fetching the monitored feed."""

from .interfaces import (
    FeedConfig, FeedRecord, FetchInterval, RetentionWindow,
    FetcherInterface, StorageInterface,
)
from .fetcher import FeedFetcher

__all__ = [
    "FeedConfig", "FeedRecord", "FetchInterval", "RetentionWindow",
    "FetcherInterface", "StorageInterface", "FeedFetcher",
]
