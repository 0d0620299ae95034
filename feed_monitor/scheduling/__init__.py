"""Periodic fetch-and-retain scheduling."""

from .scheduler import FeedScheduler, SchedulerState, TickResult, TickStatus

__all__ = ["FeedScheduler", "SchedulerState", "TickResult", "TickStatus"]
