"""SQLite connection handling for the usage ledger.

One table, ``usage``: a row per AI API call, appended and never updated.
Timestamps are Unix seconds (UTC).
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_DB_PATH = Path("db/usage.db")

# Seconds to wait on a locked database (CLI and web may share the file)
BUSY_TIMEOUT = 5.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS usage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL DEFAULT 0,
    course_id INTEGER,
    action TEXT NOT NULL,
    tokens_in INTEGER NOT NULL DEFAULT 0,
    tokens_out INTEGER NOT NULL DEFAULT 0,
    credits REAL NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_usage_created_at ON usage(created_at);
CREATE INDEX IF NOT EXISTS idx_usage_user ON usage(user_id);
"""


@contextmanager
def get_db(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Open a connection, commit on success and roll back on error.

    Example:
        with get_db(path) as conn:
            rows = conn.execute("SELECT * FROM usage").fetchall()
    """
    path = Path(db_path or DEFAULT_DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def ensure_schema(db_path: Path | None = None) -> None:
    """Create the usage table and indexes if missing."""
    with get_db(db_path) as conn:
        conn.executescript(SCHEMA)
    logger.debug("usage_schema_ready", path=str(db_path or DEFAULT_DB_PATH))
