"""SQLAlchemy models for the feed monitor database."""

from datetime import datetime

from sqlalchemy import create_engine, Column, Integer, String, Text, LargeBinary, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FeedRecordModel(Base):
    """Database model for fetched feed payloads."""
    __tablename__ = "rss_feed_monitor"

    id = Column(Integer, primary_key=True, autoincrement=True)
    feed_url = Column(Text, nullable=False)
    feed_data = Column(LargeBinary, nullable=False)
    retrieved_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_feed_retrieved_at', 'retrieved_at'),
    )


class OptionModel(Base):
    """Named settings values, stored as JSON text."""
    __tablename__ = "options"

    name = Column(String(191), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine
