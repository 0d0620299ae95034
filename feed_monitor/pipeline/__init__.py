"""Service wiring for the feed monitor."""

from .monitor import FeedMonitor

__all__ = ["FeedMonitor"]
