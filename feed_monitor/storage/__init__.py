"""Database storage and models."""

from .database import RecordStore
from .models import FeedRecordModel, OptionModel, init_db

__all__ = ["RecordStore", "FeedRecordModel", "OptionModel", "init_db"]
