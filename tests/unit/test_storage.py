"""Unit tests for storage module."""

import pytest
from datetime import datetime, timedelta

from feed_monitor.ingestion.interfaces import RetentionWindow
from feed_monitor.retention import cutoff
from feed_monitor.storage.database import RecordStore


T = datetime(2024, 6, 15, 12, 0, 0)
URL = "https://example.com/feed.xml"


class TestRecordStore:
    """Tests for RecordStore."""

    def test_insert_and_get(self, temp_db):
        """Should save and retrieve a record."""
        storage = RecordStore(temp_db)

        record_id = storage.insert(URL, b"<rss>one</rss>", T)
        assert record_id is not None
        assert record_id > 0

        record = storage.get(record_id)
        assert record is not None
        assert record.id == record_id
        assert record.feed_url == URL
        assert record.feed_data == b"<rss>one</rss>"
        assert record.retrieved_at == T

    def test_duplicates_allowed(self, temp_db):
        """Identical payloads are stored as separate rows."""
        storage = RecordStore(temp_db)

        first = storage.insert(URL, b"<rss/>", T)
        second = storage.insert(URL, b"<rss/>", T)
        assert first != second
        assert storage.count() == 2

    def test_ids_increase(self, temp_db):
        storage = RecordStore(temp_db)
        ids = [storage.insert(URL, b"x", T + timedelta(minutes=i)) for i in range(3)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_binary_payload_round_trip(self, temp_db):
        """Payload bytes are stored opaquely, including non-UTF-8 content."""
        storage = RecordStore(temp_db)
        payload = b"<?xml version='1.0' encoding='latin-1'?><rss>\xe9\x00\xff</rss>"

        record_id = storage.insert(URL, payload, T)
        assert storage.get(record_id).feed_data == payload

    def test_get_missing(self, temp_db):
        storage = RecordStore(temp_db)
        assert storage.get(5) is None

    def test_list_all_newest_first(self, temp_db):
        storage = RecordStore(temp_db)
        old = storage.insert(URL, b"old", T - timedelta(days=2))
        new = storage.insert(URL, b"new", T)
        middle = storage.insert(URL, b"middle", T - timedelta(days=1))

        records = storage.list_all()
        assert [r.id for r in records] == [new, middle, old]

    def test_list_all_empty(self, temp_db):
        assert RecordStore(temp_db).list_all() == []

    def test_delete(self, temp_db):
        storage = RecordStore(temp_db)
        record_id = storage.insert(URL, b"x", T)

        assert storage.delete(record_id) is True
        assert storage.get(record_id) is None
        assert storage.delete(record_id) is False

    def test_delete_missing(self, temp_db):
        assert RecordStore(temp_db).delete(42) is False

    def test_delete_older_than_exact(self, temp_db):
        """Removes exactly the records retrieved before the cutoff."""
        storage = RecordStore(temp_db)
        limit = T - timedelta(days=7)

        storage.insert(URL, b"before", limit - timedelta(seconds=1))
        at_cutoff = storage.insert(URL, b"at", limit)
        after = storage.insert(URL, b"after", limit + timedelta(seconds=1))

        assert storage.delete_older_than(limit) == 1
        assert sorted(r.id for r in storage.list_all()) == [at_cutoff, after]

    def test_delete_older_than_idempotent(self, temp_db):
        storage = RecordStore(temp_db)
        storage.insert(URL, b"a", T - timedelta(days=30))
        storage.insert(URL, b"b", T - timedelta(days=20))
        storage.insert(URL, b"c", T)

        limit = T - timedelta(days=7)
        assert storage.delete_older_than(limit) == 2
        assert storage.delete_older_than(limit) == 0
        assert storage.count() == 1

    def test_weekly_retention_scenario(self, temp_db):
        """T-10d, T-3d, T-1h with a week window keeps the last two."""
        storage = RecordStore(temp_db)
        storage.insert(URL, b"ten days", T - timedelta(days=10))
        three_days = storage.insert(URL, b"three days", T - timedelta(days=3))
        one_hour = storage.insert(URL, b"one hour", T - timedelta(hours=1))

        limit = cutoff(T, RetentionWindow.WEEK)
        assert limit == T - timedelta(days=7)

        assert storage.delete_older_than(limit) == 1
        assert [r.id for r in storage.list_all()] == [one_hour, three_days]

    def test_create_tables_idempotent(self, temp_db):
        storage = RecordStore(temp_db)
        storage.insert(URL, b"x", T)
        storage.create_tables()
        RecordStore(temp_db).create_tables()
        assert storage.count() == 1

    def test_to_dict_omits_payload(self, temp_db):
        storage = RecordStore(temp_db)
        record = storage.get(storage.insert(URL, b"12345", T))
        data = record.to_dict()
        assert data["size"] == 5
        assert data["retrieved_at"] == T.isoformat()
        assert "feed_data" not in data
