"""Best-effort usage ledger.

Every AI API call made by the generators is recorded once (action, tokens,
credits, user, optional course). Recording must never break the workflow:
database failures are logged and swallowed.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import structlog

from coursegen.db.database import ensure_schema
from coursegen.db.usage_repository import (
    UsageBreakdownRow,
    UsageRecord,
    UsageSummary,
    get_by_action,
    get_by_user,
    get_daily_breakdown,
    get_summary,
    insert_usage,
)
from coursegen.llm.client import CompletionResult

logger = structlog.get_logger(__name__)

ACTION_GENERATE_OUTLINE = "generate_outline"
ACTION_GENERATE_LESSON = "generate_lesson"


class UsageLedger:
    """Append-only usage ledger backed by SQLite."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            ensure_schema(self.db_path)
            self._schema_ready = True

    def record(
        self,
        action: str,
        tokens_in: int = 0,
        tokens_out: int = 0,
        credits: float = 0.0,
        user_id: int = 0,
        course_id: int | None = None,
    ) -> None:
        """Append one record. Never raises."""
        try:
            self._ensure_schema()
            insert_usage(
                UsageRecord(
                    action=action,
                    tokens_in=tokens_in,
                    tokens_out=tokens_out,
                    credits=credits,
                    user_id=user_id,
                    course_id=course_id,
                ),
                db_path=self.db_path,
            )
        except (sqlite3.Error, OSError) as e:
            logger.warning("usage_record_failed", action=action, error=str(e))
            return

        logger.debug(
            "usage_recorded",
            action=action,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            credits=credits,
            user_id=user_id,
        )

    def record_completion(
        self,
        action: str,
        completion: CompletionResult,
        user_id: int = 0,
        course_id: int | None = None,
    ) -> None:
        """Append the accounting of one completion."""
        self.record(
            action,
            tokens_in=completion.tokens_in,
            tokens_out=completion.tokens_out,
            credits=completion.credits_charged,
            user_id=user_id,
            course_id=course_id,
        )

    def summary(self, days: int = 30) -> UsageSummary:
        self._ensure_schema()
        return get_summary(days, db_path=self.db_path)

    def daily_breakdown(self, days: int = 30) -> list[UsageBreakdownRow]:
        self._ensure_schema()
        return get_daily_breakdown(days, db_path=self.db_path)

    def by_action(self, days: int = 30) -> list[UsageBreakdownRow]:
        self._ensure_schema()
        return get_by_action(days, db_path=self.db_path)

    def by_user(self, days: int = 30, limit: int = 10) -> list[UsageBreakdownRow]:
        self._ensure_schema()
        return get_by_user(days, limit=limit, db_path=self.db_path)
