"""Repository functions for the usage table.

Insert plus the reporting queries behind `coursegen usage` and
GET /api/usage. All report windows are "last N days" from now.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from coursegen.db.database import get_db

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400
MAX_ACTION_LENGTH = 100


@dataclass
class UsageRecord:
    """One usage row."""

    action: str
    tokens_in: int
    tokens_out: int
    credits: float
    user_id: int = 0
    course_id: int | None = None
    created_at: int = 0


@dataclass
class UsageSummary:
    """Totals over a time window."""

    total_requests: int
    total_tokens_in: int
    total_tokens_out: int
    total_credits: float


@dataclass
class UsageBreakdownRow:
    """Aggregated usage for one group (day, action or user)."""

    key: str
    requests: int
    tokens_in: int
    tokens_out: int
    credits: float


def insert_usage(record: UsageRecord, db_path: Path | None = None) -> int:
    """Insert a usage record and return its row id.

    Raises:
        sqlite3.Error: On any database failure
    """
    created_at = record.created_at or int(time.time())
    with get_db(db_path) as conn:
        cursor = conn.execute(
            """
            INSERT INTO usage (
                user_id, course_id, action, tokens_in, tokens_out, credits, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.user_id,
                record.course_id,
                record.action[:MAX_ACTION_LENGTH],
                record.tokens_in,
                record.tokens_out,
                record.credits,
                created_at,
            ),
        )
        return int(cursor.lastrowid)


def _since(days: int) -> int:
    return int(time.time()) - days * SECONDS_PER_DAY


def get_summary(days: int = 30, db_path: Path | None = None) -> UsageSummary:
    """Total requests, tokens and credits over the last N days."""
    with get_db(db_path) as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total_requests,
                   COALESCE(SUM(tokens_in), 0) AS total_tokens_in,
                   COALESCE(SUM(tokens_out), 0) AS total_tokens_out,
                   COALESCE(SUM(credits), 0) AS total_credits
              FROM usage
             WHERE created_at >= ?
            """,
            (_since(days),),
        ).fetchone()

    return UsageSummary(
        total_requests=row["total_requests"],
        total_tokens_in=row["total_tokens_in"],
        total_tokens_out=row["total_tokens_out"],
        total_credits=float(row["total_credits"]),
    )


def _breakdown(sql: str, params: tuple, db_path: Path | None) -> list[UsageBreakdownRow]:
    with get_db(db_path) as conn:
        rows = conn.execute(sql, params).fetchall()

    return [
        UsageBreakdownRow(
            key=str(row["key"]),
            requests=row["requests"],
            tokens_in=row["tokens_in"] or 0,
            tokens_out=row["tokens_out"] or 0,
            credits=float(row["credits"] or 0),
        )
        for row in rows
    ]


def get_daily_breakdown(days: int = 30, db_path: Path | None = None) -> list[UsageBreakdownRow]:
    """Usage per UTC day, newest first."""
    return _breakdown(
        """
        SELECT strftime('%Y-%m-%d', created_at, 'unixepoch') AS key,
               COUNT(*) AS requests,
               SUM(tokens_in) AS tokens_in,
               SUM(tokens_out) AS tokens_out,
               SUM(credits) AS credits
          FROM usage
         WHERE created_at >= ?
      GROUP BY key
      ORDER BY key DESC
        """,
        (_since(days),),
        db_path,
    )


def get_by_action(days: int = 30, db_path: Path | None = None) -> list[UsageBreakdownRow]:
    """Usage per action, most requested first."""
    return _breakdown(
        """
        SELECT action AS key,
               COUNT(*) AS requests,
               SUM(tokens_in) AS tokens_in,
               SUM(tokens_out) AS tokens_out,
               SUM(credits) AS credits
          FROM usage
         WHERE created_at >= ?
      GROUP BY action
      ORDER BY requests DESC
        """,
        (_since(days),),
        db_path,
    )


def get_by_user(
    days: int = 30, limit: int = 10, db_path: Path | None = None
) -> list[UsageBreakdownRow]:
    """Usage per user, highest credit spend first."""
    return _breakdown(
        """
        SELECT user_id AS key,
               COUNT(*) AS requests,
               SUM(tokens_in) AS tokens_in,
               SUM(tokens_out) AS tokens_out,
               SUM(credits) AS credits
          FROM usage
         WHERE created_at >= ?
      GROUP BY user_id
      ORDER BY credits DESC
         LIMIT ?
        """,
        (_since(days), limit),
        db_path,
    )
