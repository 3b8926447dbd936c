"""Tests for ingest history."""

import datetime
import time

from dictionary_ingest import history


class TestHistoryRecord:

    def test_commit_records_history(self, ingester, walk_document):
        ingester.ingest(walk_document)
        (record,) = ingester.get_history(word="walk")
        assert record.status == "COMMITTED"
        assert record.source_entity_id == "merriam_learners-walk-4d3c7c6a-walk"
        assert record.started_at <= record.finished_at
        assert "1 definition(s)" in record.message

    def test_filters(self, ingester, walk_document, make_document):
        ingester.ingest(walk_document)
        ingester.ingest(make_document("amble", definitions=["to walk slowly"]))
        ingester.ingest_many([{"hwi": {}}])

        assert [r.word for r in ingester.get_history(status="COMMITTED")] == ["walk", "amble"]
        assert len(ingester.get_history(status="FAILED")) == 1
        assert len(ingester.get_history(limit=2)) == 2


class TestHistoryTimestamp:

    def test_filter_by_timestamp(self, ingester, walk_document, make_document):
        ingester.ingest(walk_document)

        # Database uses UTC timestamps with milliseconds
        time.sleep(0.1)
        middle = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")
        time.sleep(0.1)

        ingester.ingest(make_document("amble", definitions=["to walk slowly"]))

        changes = ingester.get_history(since=middle)
        assert [r.word for r in changes] == ["amble"]


class TestRecordRun:

    def test_record_run_returns_rowid(self, db_conn):
        started = history.now(db_conn)
        rowid = history.record_run(db_conn, "walk", history.FAILED, started, message="boom")
        (record,) = history.query_history(db_conn)
        assert record.id == rowid
        assert record.message == "boom"
