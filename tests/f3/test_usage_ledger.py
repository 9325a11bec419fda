"""Tests for the usage ledger and reporting queries."""

import sqlite3
import time
from unittest.mock import patch

import pytest

from coursegen.core.usage_ledger import ACTION_GENERATE_LESSON, ACTION_GENERATE_OUTLINE, UsageLedger
from coursegen.db.database import get_db
from coursegen.db.usage_repository import UsageRecord, insert_usage
from coursegen.llm.client import CompletionResult


DAY = 86400


class TestRecord:
    """Appending records."""

    def test_record_stored(self, ledger):
        ledger.record(ACTION_GENERATE_OUTLINE, 100, 50, 0.75, user_id=2, course_id=None)

        with get_db(ledger.db_path) as conn:
            row = conn.execute("SELECT * FROM usage").fetchone()

        assert row["action"] == "generate_outline"
        assert (row["tokens_in"], row["tokens_out"], row["credits"]) == (100, 50, 0.75)
        assert row["user_id"] == 2
        assert row["course_id"] is None
        assert abs(row["created_at"] - time.time()) < 60

    def test_record_completion(self, ledger):
        completion = CompletionResult(text="x", tokens_in=7, tokens_out=9, credits_charged=0.2)

        ledger.record_completion(ACTION_GENERATE_LESSON, completion, user_id=5, course_id=11)

        with get_db(ledger.db_path) as conn:
            row = conn.execute("SELECT * FROM usage").fetchone()
        assert (row["tokens_in"], row["tokens_out"], row["course_id"]) == (7, 9, 11)

    def test_long_action_truncated(self, ledger):
        ledger.record("a" * 150)

        with get_db(ledger.db_path) as conn:
            action = conn.execute("SELECT action FROM usage").fetchone()["action"]
        assert len(action) == 100

    def test_database_failure_swallowed(self, ledger):
        with patch(
            "coursegen.core.usage_ledger.insert_usage",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            ledger.record(ACTION_GENERATE_OUTLINE, 1, 1, 0.0)

        assert ledger.summary().total_requests == 0

    def test_unwritable_location_swallowed(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        ledger = UsageLedger(blocker / "usage.db")

        ledger.record(ACTION_GENERATE_OUTLINE, 1, 1, 0.0)


class TestReports:
    """Reporting queries."""

    @pytest.fixture
    def populated(self, ledger):
        now = int(time.time())
        rows = [
            UsageRecord("generate_outline", 100, 50, 1.0, user_id=1, created_at=now),
            UsageRecord("generate_lesson", 200, 400, 2.0, user_id=1, created_at=now),
            UsageRecord("generate_lesson", 200, 400, 2.0, user_id=2, created_at=now - DAY),
            UsageRecord("generate_lesson", 10, 10, 5.0, user_id=3, created_at=now - 2 * DAY),
            # Outside a 30 day window
            UsageRecord("generate_outline", 999, 999, 99.0, user_id=9, created_at=now - 40 * DAY),
        ]
        ledger.summary()  # creates schema
        for row in rows:
            insert_usage(row, db_path=ledger.db_path)
        return ledger

    def test_summary(self, populated):
        summary = populated.summary(30)

        assert summary.total_requests == 4
        assert summary.total_tokens_in == 510
        assert summary.total_tokens_out == 860
        assert summary.total_credits == pytest.approx(10.0)

    def test_summary_window(self, populated):
        assert populated.summary(60).total_requests == 5

    def test_empty_summary(self, ledger):
        summary = ledger.summary()

        assert summary.total_requests == 0
        assert summary.total_credits == 0.0

    def test_by_action_ordered_by_requests(self, populated):
        rows = populated.by_action()

        assert [(r.key, r.requests) for r in rows] == [("generate_lesson", 3), ("generate_outline", 1)]

    def test_by_user_ordered_by_credits(self, populated):
        rows = populated.by_user()

        assert [r.key for r in rows] == ["3", "1", "2"]
        assert rows[0].credits == pytest.approx(5.0)

    def test_by_user_limit(self, populated):
        assert len(populated.by_user(limit=2)) == 2

    def test_daily_breakdown_newest_first(self, populated):
        rows = populated.daily_breakdown()

        keys = [r.key for r in rows]
        assert keys == sorted(keys, reverse=True)
        assert sum(r.requests for r in rows) == 4
