"""Database operations for feed record storage."""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker
import structlog

from .models import Base, FeedRecordModel, init_db
from ..ingestion.interfaces import FeedRecord, StorageInterface
from ..config.settings import settings

logger = structlog.get_logger()


def ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    if database_url.startswith("sqlite:///"):
        db_path = database_url.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)


class RecordStore(StorageInterface):
    """SQL-backed store for fetched feed payloads.

    Every operation runs in its own session and commits once, so a record is
    either fully written (url, payload and timestamp together) or absent.
    """

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        ensure_sqlite_dir(database_url)

        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine)

    def create_tables(self) -> None:
        """Create tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def insert(self, feed_url: str, payload: bytes, timestamp: datetime) -> int:
        """Store a fetched payload, return its ID. Duplicate content is allowed."""
        session = self.Session()
        try:
            model = FeedRecordModel(
                feed_url=feed_url,
                feed_data=payload,
                retrieved_at=timestamp,
            )
            session.add(model)
            session.commit()
            record_id = model.id
            logger.debug("record_saved", id=record_id, url=feed_url[:50], size=len(payload))
            return record_id
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_all(self) -> List[FeedRecord]:
        """Get all records ordered newest first."""
        session = self.Session()
        try:
            models = session.query(FeedRecordModel)\
                .order_by(FeedRecordModel.retrieved_at.desc(), FeedRecordModel.id.desc())\
                .all()
            return [self._model_to_record(m) for m in models]
        finally:
            session.close()

    def get(self, record_id: int) -> Optional[FeedRecord]:
        """Get record by ID."""
        session = self.Session()
        try:
            model = session.get(FeedRecordModel, record_id)
            return self._model_to_record(model) if model else None
        finally:
            session.close()

    def delete(self, record_id: int) -> bool:
        """Delete record by ID."""
        session = self.Session()
        try:
            deleted = session.query(FeedRecordModel)\
                .filter(FeedRecordModel.id == record_id)\
                .delete(synchronize_session=False)
            session.commit()
            if deleted:
                logger.info("record_deleted", id=record_id)
            return deleted > 0
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete every record retrieved strictly before cutoff."""
        session = self.Session()
        try:
            deleted = session.query(FeedRecordModel)\
                .filter(FeedRecordModel.retrieved_at < cutoff)\
                .delete(synchronize_session=False)
            session.commit()
            logger.debug("records_older_than_deleted", cutoff=cutoff.isoformat(), count=deleted)
            return deleted
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def count(self) -> int:
        """Number of stored records."""
        session = self.Session()
        try:
            return session.query(func.count(FeedRecordModel.id)).scalar() or 0
        finally:
            session.close()

    def _model_to_record(self, model: FeedRecordModel) -> FeedRecord:
        """Convert database model to FeedRecord."""
        return FeedRecord(
            id=model.id,
            feed_url=model.feed_url,
            feed_data=model.feed_data,
            retrieved_at=model.retrieved_at,
        )
